from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Tuple

import pandas as pd

from telecom_churn.utils.exceptions import DataQualityError
from telecom_churn.utils.logger import setup_logger

logger = setup_logger("ETL_Cleaning")

NO_INTERNET_SERVICE = "No Internet Service"
NO_PHONE_SERVICE = "No Phone Service"
NO_OFFER = "None"

TARGET = "churned"
STATUS_CHURNED = "Churned"

# Fields that only apply when internet_service == "Yes"
INTERNET_DEPENDENT_FIELDS: List[str] = [
    "internet_type",
    "online_security",
    "online_backup",
    "device_protection_plan",
    "premium_tech_support",
    "streaming_tv",
    "streaming_movies",
    "streaming_music",
    "unlimited_data",
]

# Fields that only apply when phone_service == "Yes"
PHONE_DEPENDENT_FIELDS: List[str] = ["multiple_lines"]

# Usage averages left blank for customers without the underlying service
MEDIAN_IMPUTED_FIELDS: List[str] = [
    "avg_monthly_gb_download",
    "avg_monthly_long_distance_charges",
]


@dataclass
class CleaningReport:
    recoded: Dict[str, int] = field(default_factory=dict)
    imputed_medians: Dict[str, float] = field(default_factory=dict)
    unexplained_missing: pd.DataFrame = field(
        default_factory=lambda: pd.DataFrame(columns=["customer_id", "field", "prerequisite_value"])
    )
    conflicting_values: pd.DataFrame = field(
        default_factory=lambda: pd.DataFrame(columns=["customer_id", "field", "value"])
    )

    @property
    def has_unexplained_missing(self) -> bool:
        return not self.unexplained_missing.empty

    @property
    def has_conflicting_values(self) -> bool:
        return not self.conflicting_values.empty


class CleaningResult(NamedTuple):
    data: pd.DataFrame
    report: CleaningReport


def is_blank(series: pd.Series) -> pd.Series:
    """True for NaN and for empty or whitespace-only strings."""
    as_text = series.astype("string").str.strip()
    return series.isna() | (as_text == "").fillna(False).astype(bool)


def add_churn_label(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df[TARGET] = (df["customer_status"] == STATUS_CHURNED).map({True: "Yes", False: "No"})
    return df


def recode_inapplicable(
    df: pd.DataFrame,
    fields: List[str],
    prerequisite: str,
    sentinel: str,
) -> Tuple[pd.DataFrame, Dict[str, int]]:
    """
    Sets every value to `sentinel` where the prerequisite service is "No",
    blank or not. Customers who do have the prerequisite are left untouched.
    """
    df = df.copy()
    no_service = df[prerequisite] == "No"
    counts = {}
    for col in fields:
        if col not in df.columns:
            continue
        df[col] = df[col].astype(object)
        mask = no_service & (df[col] != sentinel)
        df.loc[mask, col] = sentinel
        counts[col] = int(mask.sum())
    return df, counts


def find_unexplained_missing(df: pd.DataFrame) -> pd.DataFrame:
    """
    Lists (customer_id, field) pairs where a service field is still blank
    after recoding, i.e. the blank cannot be explained by an absent service.
    """
    rules = (
        [(col, "internet_service") for col in INTERNET_DEPENDENT_FIELDS]
        + [(col, "phone_service") for col in PHONE_DEPENDENT_FIELDS]
    )
    frames = []
    for col, prerequisite in rules:
        if col not in df.columns:
            continue
        mask = is_blank(df[col])
        if mask.any():
            frames.append(pd.DataFrame({
                "customer_id": df.loc[mask, "customer_id"],
                "field": col,
                "prerequisite_value": df.loc[mask, prerequisite],
            }))

    if not frames:
        return pd.DataFrame(columns=["customer_id", "field", "prerequisite_value"])
    return pd.concat(frames, ignore_index=True)


def find_conflicting_values(df: pd.DataFrame) -> pd.DataFrame:
    """
    Lists (customer_id, field, value) where a service field carries a real
    value although its prerequisite service is "No". Run before recoding.
    """
    rules = (
        [(col, "internet_service", NO_INTERNET_SERVICE) for col in INTERNET_DEPENDENT_FIELDS]
        + [(col, "phone_service", NO_PHONE_SERVICE) for col in PHONE_DEPENDENT_FIELDS]
    )
    frames = []
    for col, prerequisite, sentinel in rules:
        if col not in df.columns:
            continue
        mask = (df[prerequisite] == "No") & ~is_blank(df[col]) & (df[col].astype(object) != sentinel)
        if mask.any():
            frames.append(pd.DataFrame({
                "customer_id": df.loc[mask, "customer_id"],
                "field": col,
                "value": df.loc[mask, col],
            }))

    if not frames:
        return pd.DataFrame(columns=["customer_id", "field", "value"])
    return pd.concat(frames, ignore_index=True)


def impute_medians(df: pd.DataFrame, fields: List[str]) -> Tuple[pd.DataFrame, Dict[str, float]]:
    """Median is recomputed from the current batch on every run."""
    df = df.copy()
    medians = {}
    for col in fields:
        if col not in df.columns:
            continue
        values = pd.to_numeric(df[col], errors="coerce")
        median = values.median()
        if pd.isna(median):
            logger.warning(f"Column '{col}' has no observed values; leaving it missing.")
            df[col] = values
            continue
        df[col] = values.fillna(median)
        medians[col] = float(median)
    return df, medians


def clean_data(df: pd.DataFrame, strict: bool = False) -> CleaningResult:
    """
    Cleans a raw customer table without mutating it.

    1. Derives the `churned` label from customer_status.
    2. Recodes structurally inapplicable service fields, reporting any that
       carried a real value.
    3. Median-imputes usage averages.
    4. Reports blanks the recoding rules cannot explain.
    """
    logger.info("Starting data cleaning...")
    report = CleaningReport()

    df = add_churn_label(df)

    report.conflicting_values = find_conflicting_values(df)
    if report.has_conflicting_values:
        summary = report.conflicting_values.groupby("field").size().to_dict()
        logger.warning(f"Service values set although the prerequisite service is absent (recoded): {summary}")
        if strict:
            raise DataQualityError(
                f"{len(report.conflicting_values)} service values are set although "
                f"the prerequisite service is absent: {summary}"
            )

    df, internet_counts = recode_inapplicable(
        df, INTERNET_DEPENDENT_FIELDS, "internet_service", NO_INTERNET_SERVICE
    )
    df, phone_counts = recode_inapplicable(
        df, PHONE_DEPENDENT_FIELDS, "phone_service", NO_PHONE_SERVICE
    )
    report.recoded = {**internet_counts, **phone_counts}

    if "offer" in df.columns:
        df["offer"] = df["offer"].astype(object).where(~is_blank(df["offer"]), NO_OFFER)

    df, report.imputed_medians = impute_medians(df, MEDIAN_IMPUTED_FIELDS)

    report.unexplained_missing = find_unexplained_missing(df)
    if report.has_unexplained_missing:
        summary = report.unexplained_missing.groupby("field").size().to_dict()
        logger.warning(f"Unexplained missing service values (left as missing): {summary}")
        if strict:
            raise DataQualityError(
                f"{len(report.unexplained_missing)} service values are blank although "
                f"the prerequisite service is active: {summary}"
            )

    logger.info(f"Recoded inapplicable values: {report.recoded}")
    logger.info(f"Imputed medians: {report.imputed_medians}")
    logger.info("Data cleaning completed.")
    return CleaningResult(df, report)
