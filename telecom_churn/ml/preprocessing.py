from typing import List, NamedTuple, Optional

import pandas as pd
from sklearn.model_selection import train_test_split

from telecom_churn.utils.logger import setup_logger
from telecom_churn.ml.features import FeatureConfig

logger = setup_logger("ML_Preprocessing")

UNKNOWN_LEVEL = "Unknown"


class DataSplit(NamedTuple):
    X_train: pd.DataFrame
    X_test: pd.DataFrame
    y_train: pd.Series
    y_test: pd.Series


def encode_target(df: pd.DataFrame) -> pd.Series:
    """Maps the 'Yes'/'No' churn label to 1/0."""
    y = df[FeatureConfig.TARGET].map({"Yes": 1, "No": 0})
    if y.isna().any():
        raise ValueError(f"Unexpected values in '{FeatureConfig.TARGET}': "
                         f"{sorted(df.loc[y.isna(), FeatureConfig.TARGET].astype(str).unique())}")
    return y.astype(int).rename(FeatureConfig.TARGET)


def _quartile_labels(quartile: pd.Series) -> pd.Series:
    # Customers without a population match form their own level
    return quartile.map(lambda q: UNKNOWN_LEVEL if pd.isna(q) else f"Q{int(q)}")


def encode_features(
    df: pd.DataFrame,
    categorical: Optional[List[str]] = None,
    numeric: Optional[List[str]] = None,
) -> pd.DataFrame:
    """
    Builds the model matrix: numeric columns as floats followed by one
    indicator per non-reference level of each categorical column. The
    reference level is the first level in sorted order. Blank categorical
    values get no indicator, so they fall into the reference level.
    """
    categorical = categorical if categorical is not None else FeatureConfig.get_categorical_features(df.columns)
    numeric = numeric if numeric is not None else FeatureConfig.get_numeric_features(df.columns)
    logger.info(f"Numeric features: {len(numeric)}")
    logger.info(f"Categorical features: {len(categorical)}")

    num = pd.DataFrame(
        {col: pd.to_numeric(df[col], errors="coerce") for col in numeric}, index=df.index
    ).astype(float)
    missing = num.isna().sum()
    missing = missing[missing > 0]
    if not missing.empty:
        logger.warning(f"Filling missing numeric values with column medians: {missing.to_dict()}")
        num = num.fillna(num.median())

    cat = df[categorical].astype(object)
    if "population_quartile" in cat.columns:
        cat["population_quartile"] = _quartile_labels(df["population_quartile"])

    dummies = pd.get_dummies(cat, columns=categorical, drop_first=True, dtype=int)
    encoded = pd.concat([num, dummies], axis=1)
    logger.info(f"Encoded feature matrix: {encoded.shape[0]} rows x {encoded.shape[1]} columns.")
    return encoded


def split_data(
    X: pd.DataFrame,
    y: pd.Series,
    test_size: float = 0.3,
    random_state: int = 42,
) -> DataSplit:
    """Stratified split; the same seed always yields the same partition."""
    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=test_size, random_state=random_state, stratify=y
    )
    logger.info(f"Training set: {len(X_train)} rows ({y_train.mean():.2%} churn)")
    logger.info(f"Test set: {len(X_test)} rows ({y_test.mean():.2%} churn)")
    return DataSplit(X_train, X_test, y_train, y_test)
