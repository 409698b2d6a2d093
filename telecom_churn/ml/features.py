from typing import List

import numpy as np
import pandas as pd

from telecom_churn.utils.logger import setup_logger

logger = setup_logger("ML_Features")


class FeatureConfig:
    """
    Configuration for Feature Selection and Grouping.
    Acts as the single source of truth for model features.
    """

    # --- 1. Target Variable ---
    TARGET: str = "churned"  # "Yes" iff customer_status == "Churned"

    # --- 2. Identity Column (Exclude from training) ---
    IDENTIFIER: str = "customer_id"

    # --- 3. Data Leakage & Irrelevant Columns ---
    EXCLUDE_COLUMNS: List[str] = [
        "customer_id",
        "customer_status",  # LEAKAGE: source of the target
        "churn_category",   # LEAKAGE: only known after the customer churns
        "churn_reason",     # LEAKAGE: post-hoc explanation
        "zip_code",         # High cardinality; replaced by population_quartile
        "city",             # High cardinality
        "latitude",
        "longitude",
        "population",       # Raw join value; modelled through its quartile
    ]

    # --- 4. Optional services counted by service_count ---
    OPTIONAL_SERVICES: List[str] = [
        "online_security",
        "online_backup",
        "device_protection_plan",
        "premium_tech_support",
        "streaming_tv",
        "streaming_movies",
        "streaming_music",
    ]

    # --- 5. Model inputs ---
    NUMERIC_FEATURES: List[str] = [
        "age",
        "number_of_dependents",
        "number_of_referrals",
        "tenure_in_months",
        "avg_monthly_long_distance_charges",
        "avg_monthly_gb_download",
        "monthly_charge",
        "total_charges",
        "total_refunds",
        "total_extra_data_charges",
        "total_long_distance_charges",
        "total_revenue",
        "customer_lifetime_value",
        "service_count",
    ]

    CATEGORICAL_FEATURES: List[str] = [
        "gender",
        "married",
        "offer",
        "phone_service",
        "multiple_lines",
        "internet_service",
        "internet_type",
        "online_security",
        "online_backup",
        "device_protection_plan",
        "premium_tech_support",
        "streaming_tv",
        "streaming_movies",
        "streaming_music",
        "unlimited_data",
        "contract",
        "paperless_billing",
        "payment_method",
        "population_quartile",
    ]

    @classmethod
    def get_numeric_features(cls, columns) -> List[str]:
        """Numeric features present in `columns`, in configured order."""
        available = set(columns)
        return [c for c in cls.NUMERIC_FEATURES if c in available]

    @classmethod
    def get_categorical_features(cls, columns) -> List[str]:
        available = set(columns)
        return [c for c in cls.CATEGORICAL_FEATURES if c in available]


def safe_ratio(numerator: pd.Series, denominator: pd.Series, default: float = 0.0) -> pd.Series:
    """numerator / denominator, with `default` wherever the denominator is 0 or missing."""
    num = pd.to_numeric(numerator, errors="coerce")
    den = pd.to_numeric(denominator, errors="coerce")
    valid = den.notna() & (den != 0) & num.notna()
    out = pd.Series(default, index=num.index, dtype=float)
    out[valid] = num[valid] / den[valid]
    return out


def add_lifetime_value(df: pd.DataFrame) -> pd.DataFrame:
    """Average monthly revenue; zero-tenure customers get 0.0 instead of inf/NaN."""
    df = df.copy()
    df["customer_lifetime_value"] = safe_ratio(df["total_revenue"], df["tenure_in_months"])
    zero_tenure = int((pd.to_numeric(df["tenure_in_months"], errors="coerce") == 0).sum())
    if zero_tenure:
        logger.info(f"{zero_tenure} customers with zero tenure get customer_lifetime_value = 0.0")
    return df


def add_service_count(df: pd.DataFrame, services: List[str] = None) -> pd.DataFrame:
    """Counts "Yes" across the optional services; "No" and sentinels count as 0."""
    if services is None:
        services = FeatureConfig.OPTIONAL_SERVICES
    df = df.copy()
    df["service_count"] = df[services].eq("Yes").sum(axis=1).astype(int)
    return df


def join_population(df: pd.DataFrame, zip_population: pd.DataFrame) -> pd.DataFrame:
    """Left join on zip_code; unmatched customers keep a missing population."""
    merged = df.merge(zip_population[["zip_code", "population"]], on="zip_code", how="left")
    merged.index = df.index
    unmatched = int(merged["population"].isna().sum())
    if unmatched:
        logger.warning(f"{unmatched} customers have no zip code population match.")
    return merged


def population_quartiles(population: pd.Series) -> pd.Series:
    """
    Ordinal 1-4 over ascending population rank. Ties are broken by row order,
    so bucket sizes differ by at most one. Missing population stays missing.
    """
    known = population.notna()
    quartile = pd.Series(pd.NA, index=population.index, dtype="Int64")
    n = int(known.sum())
    if n == 0:
        return quartile
    ranks = population[known].rank(method="first")
    quartile[known] = np.ceil(ranks * 4 / n).astype(int).to_numpy()
    return quartile


def add_population_quartile(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df["population_quartile"] = population_quartiles(df["population"])
    return df


def engineer_features(df: pd.DataFrame, zip_population: pd.DataFrame) -> pd.DataFrame:
    """Runs every feature step on a cleaned customer table and returns a new table."""
    logger.info("Engineering features...")
    df = add_lifetime_value(df)
    df = add_service_count(df)
    df = join_population(df, zip_population)
    df = add_population_quartile(df)
    logger.info(f"Feature engineering completed: {df.shape[1]} columns.")
    return df


def service_adoption_summary(df: pd.DataFrame, services: List[str] = None) -> pd.DataFrame:
    """
    One row per optional service: adoption rate, and churn rate among
    adopters vs. non-adopters.
    """
    if services is None:
        services = FeatureConfig.OPTIONAL_SERVICES
    long = df[services + [FeatureConfig.TARGET]].melt(
        id_vars=FeatureConfig.TARGET, var_name="service", value_name="value"
    )
    long["adopted"] = long["value"].eq("Yes")
    long["is_churn"] = long[FeatureConfig.TARGET].eq("Yes").astype(float)
    long["churn_if_adopted"] = long["is_churn"].where(long["adopted"])
    long["churn_if_not_adopted"] = long["is_churn"].where(~long["adopted"])

    summary = long.groupby("service", sort=False).agg(
        customers=("value", "size"),
        adopters=("adopted", "sum"),
        adoption_rate=("adopted", "mean"),
        churn_rate_adopters=("churn_if_adopted", "mean"),
        churn_rate_non_adopters=("churn_if_not_adopted", "mean"),
    )
    return summary.reset_index()
