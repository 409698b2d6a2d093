import os
import sys
from dataclasses import dataclass
from typing import List

import pandas as pd

from telecom_churn.etl.cleaning import CleaningReport, clean_data
from telecom_churn.etl.ingest import load_inputs
from telecom_churn.ml.features import engineer_features
from telecom_churn.ml.preprocessing import DataSplit, encode_features, encode_target, split_data
from telecom_churn.ml.risk import RiskProfiler, write_export
from telecom_churn.ml.train import TrainedModel, save_model, select_best_model, train_models
from telecom_churn.utils.config import Settings, settings as default_settings
from telecom_churn.utils.logger import setup_logger

logger = setup_logger("Pipeline")


@dataclass
class PipelineResult:
    customers: pd.DataFrame
    cleaning_report: CleaningReport
    data_dictionary: pd.DataFrame
    features: pd.DataFrame
    split: DataSplit
    models: List[TrainedModel]
    best_model: TrainedModel
    scored: pd.DataFrame
    high_risk: pd.DataFrame
    output_path: str


def publish_outputs(best: TrainedModel, high_risk: pd.DataFrame, config: Settings) -> str:
    """Writes the export and the model artifact together, or neither."""
    staged_model = None
    exported = False
    try:
        if config.SAVE_MODEL:
            staged_model = save_model(best, config.MODEL_PATH + ".tmp")
        output_path = write_export(high_risk, config.OUTPUT_PATH)
        exported = True
        if staged_model:
            os.replace(staged_model, config.MODEL_PATH)
            logger.info(f"Model promoted to {config.MODEL_PATH}")
        return output_path
    except Exception:
        if staged_model and os.path.exists(staged_model):
            os.remove(staged_model)
        if exported and os.path.exists(config.OUTPUT_PATH):
            os.remove(config.OUTPUT_PATH)
        logger.error("Publishing outputs failed; removed partial outputs.")
        raise


def run_pipeline(config: Settings = default_settings) -> PipelineResult:
    """
    clean -> engineer -> encode/split -> train -> score -> profile.
    The model is staged next to the registry and only promoted once the
    export is written; any failure removes both, so a failed run leaves
    no output behind.
    """
    inputs = load_inputs(config)

    cleaned = clean_data(inputs.customers, strict=config.STRICT_DATA_QUALITY)
    customers = engineer_features(cleaned.data, inputs.zip_population)

    X = encode_features(customers)
    y = encode_target(customers)
    split = split_data(X, y, test_size=config.TEST_SIZE, random_state=config.RANDOM_STATE)

    models = train_models(split, config)
    best = select_best_model(models, metric=config.SELECTION_METRIC)

    profiler = RiskProfiler(config.RISK_MEDIUM_CUTOFF, config.RISK_HIGH_CUTOFF)
    scored = profiler.profile(best.model, X, customers)
    high_risk = profiler.high_risk_customers(scored)

    output_path = publish_outputs(best, high_risk, config)

    return PipelineResult(
        customers=customers,
        cleaning_report=cleaned.report,
        data_dictionary=inputs.data_dictionary,
        features=X,
        split=split,
        models=models,
        best_model=best,
        scored=scored,
        high_risk=high_risk,
        output_path=output_path,
    )


def main():
    try:
        result = run_pipeline()
        logger.info(
            f"Pipeline completed: {len(result.high_risk)} high risk customers "
            f"written to {result.output_path} using {result.best_model.name}."
        )
    except Exception as e:
        logger.error(f"Pipeline failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
