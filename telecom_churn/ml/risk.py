import os
import tempfile
from typing import List

import numpy as np
import pandas as pd

from telecom_churn.ml.features import FeatureConfig
from telecom_churn.ml.train import predict_proba
from telecom_churn.utils.logger import setup_logger

logger = setup_logger("ML_Risk")

LOW, MEDIUM, HIGH = "Low", "Medium", "High"
RISK_SEGMENTS: List[str] = [LOW, MEDIUM, HIGH]

EXPORT_COLUMNS: List[str] = [
    "customer_id",
    "churn_probability",
    "tenure_in_months",
    "monthly_charge",
    "contract",
    "internet_type",
    "online_security",
    "premium_tech_support",
]


class RiskProfiler:
    """
    Buckets predicted churn probability into ordered risk segments.

    Intervals are right-open except the last one:
    Low [0, medium_cutoff), Medium [medium_cutoff, high_cutoff), High [high_cutoff, 1].
    """

    def __init__(self, medium_cutoff: float = 0.3, high_cutoff: float = 0.6):
        if not 0.0 < medium_cutoff < high_cutoff <= 1.0:
            raise ValueError(
                f"Risk cut-offs must satisfy 0 < medium < high <= 1, got {medium_cutoff}, {high_cutoff}"
            )
        self.medium_cutoff = medium_cutoff
        self.high_cutoff = high_cutoff

    def assign_segment(self, probabilities) -> pd.Categorical:
        p = np.asarray(probabilities, dtype=float)
        labels = np.select(
            [p < self.medium_cutoff, p < self.high_cutoff],
            [LOW, MEDIUM],
            default=HIGH,
        )
        return pd.Categorical(labels, categories=RISK_SEGMENTS, ordered=True)

    def profile(self, model, X: pd.DataFrame, customers: pd.DataFrame) -> pd.DataFrame:
        """
        Scores every customer in `X` (train and test together) and returns a
        copy of `customers` with churn_probability and risk_segment attached.
        """
        if not X.index.equals(customers.index):
            X = X.loc[customers.index]
        scored = customers.copy()
        scored["churn_probability"] = predict_proba(model, X)
        scored["risk_segment"] = self.assign_segment(scored["churn_probability"])
        counts = scored["risk_segment"].value_counts().reindex(RISK_SEGMENTS).to_dict()
        logger.info(f"Risk segments: {counts}")
        return scored

    def high_risk_customers(self, scored: pd.DataFrame) -> pd.DataFrame:
        """High segment only, in source row order, restricted to the export columns."""
        high = scored.loc[scored["risk_segment"] == HIGH, EXPORT_COLUMNS]
        logger.info(f"{len(high)} customers in the {HIGH} risk segment.")
        return high.reset_index(drop=True)

    def segment_summary(self, scored: pd.DataFrame) -> pd.DataFrame:
        """Customer count, share and observed churn rate per risk segment."""
        frame = scored.assign(is_churn=scored[FeatureConfig.TARGET].eq("Yes").astype(float))
        summary = frame.groupby("risk_segment", observed=False).agg(
            customers=("customer_id", "size"),
            mean_probability=("churn_probability", "mean"),
            churn_rate=("is_churn", "mean"),
        )
        summary["share"] = summary["customers"] / max(len(scored), 1)
        return summary.reset_index()


def write_export(df: pd.DataFrame, path: str) -> str:
    """
    Writes the CSV through a temporary file in the target directory, so a
    failure never leaves a partial export behind.
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", suffix=".csv", dir=directory)
    try:
        with os.fdopen(fd, "w", newline="") as handle:
            df.to_csv(handle, index=False)
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        logger.error(f"Failed to write export to {path}")
        raise
    logger.info(f"Wrote {len(df)} rows to {path}")
    return path
