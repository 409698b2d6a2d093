import os
from dataclasses import dataclass
from typing import Any, Dict, List

import joblib
import numpy as np
import pandas as pd
from pydantic import BaseModel
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import confusion_matrix, f1_score, roc_auc_score
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from telecom_churn.utils.config import Settings, settings as default_settings
from telecom_churn.utils.logger import setup_logger

logger = setup_logger("ML_Trainer")

LOGISTIC_REGRESSION = "Logistic Regression"
RANDOM_FOREST = "Random Forest"


class ModelMetrics(BaseModel):
    accuracy: float
    sensitivity: float
    specificity: float
    f1: float
    auc: float
    threshold: float = 0.5
    true_positives: int
    false_positives: int
    true_negatives: int
    false_negatives: int


@dataclass
class TrainedModel:
    name: str
    model: Any
    metrics: ModelMetrics


def build_logistic_regression(max_iter: int = 1000, random_state: int = 42) -> Pipeline:
    # Scaling keeps the lbfgs solver from stalling on the revenue columns
    return Pipeline(steps=[
        ("scaler", StandardScaler()),
        ("classifier", LogisticRegression(max_iter=max_iter, random_state=random_state)),
    ])


def build_random_forest(n_estimators: int = 500, max_features: int = 4, random_state: int = 42) -> RandomForestClassifier:
    return RandomForestClassifier(
        n_estimators=n_estimators,
        max_features=max_features,
        random_state=random_state,
        n_jobs=-1,
    )


def build_models(config: Settings = default_settings) -> Dict[str, Any]:
    """The two baseline classifiers, keyed by display name, in training order."""
    return {
        LOGISTIC_REGRESSION: build_logistic_regression(config.LOGISTIC_MAX_ITER, config.RANDOM_STATE),
        RANDOM_FOREST: build_random_forest(
            config.FOREST_N_ESTIMATORS, config.FOREST_MAX_FEATURES, config.RANDOM_STATE
        ),
    }


def fit(model, X_train: pd.DataFrame, y_train: pd.Series, **hyperparameters):
    if hyperparameters:
        model.set_params(**hyperparameters)
    return model.fit(X_train, y_train)


def predict_proba(model, X: pd.DataFrame) -> np.ndarray:
    """Probability of the positive (churn) class for every row."""
    return model.predict_proba(X)[:, 1]


def score(probabilities, y_true, threshold: float = 0.5) -> ModelMetrics:
    """
    Discrete metrics at `threshold` plus AUC over the full probability ranking.
    """
    probabilities = np.asarray(probabilities, dtype=float)
    y_true = np.asarray(y_true, dtype=int)
    y_pred = (probabilities >= threshold).astype(int)

    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
    total = tn + fp + fn + tp

    return ModelMetrics(
        accuracy=(tp + tn) / total if total else 0.0,
        sensitivity=tp / (tp + fn) if (tp + fn) else 0.0,
        specificity=tn / (tn + fp) if (tn + fp) else 0.0,
        f1=f1_score(y_true, y_pred, pos_label=1, zero_division=0),
        auc=roc_auc_score(y_true, probabilities),
        threshold=threshold,
        true_positives=int(tp),
        false_positives=int(fp),
        true_negatives=int(tn),
        false_negatives=int(fn),
    )


def train_and_evaluate(model, X_train, y_train, X_test, y_test, model_name="Model", threshold=0.5) -> TrainedModel:
    """
    Trains a model and returns performance metrics on the held-out set.
    """
    logger.info(f"Training {model_name}...")
    model = fit(model, X_train, y_train)
    metrics = score(predict_proba(model, X_test), y_test, threshold)

    logger.info(f"--- {model_name} Results ---")
    logger.info(f"Accuracy: {metrics.accuracy:.4f}")
    logger.info(f"Sensitivity (Churn Capture): {metrics.sensitivity:.4f}")
    logger.info(f"Specificity: {metrics.specificity:.4f}")
    logger.info(f"F1: {metrics.f1:.4f}")
    logger.info(f"ROC-AUC: {metrics.auc:.4f}")

    return TrainedModel(name=model_name, model=model, metrics=metrics)


def train_models(split, config: Settings = default_settings) -> List[TrainedModel]:
    results = []
    for name, model in build_models(config).items():
        results.append(train_and_evaluate(
            model, split.X_train, split.y_train, split.X_test, split.y_test,
            model_name=name, threshold=config.DECISION_THRESHOLD,
        ))
    return results


def select_best_model(results: List[TrainedModel], metric: str = "auc") -> TrainedModel:
    """Highest `metric` wins; on a tie the model trained first is kept."""
    if not results:
        raise ValueError("No trained models to select from.")
    if metric not in ModelMetrics.model_fields:
        raise ValueError(f"Unknown selection metric: {metric}")

    best = max(results, key=lambda r: getattr(r.metrics, metric))
    logger.info(f"Best model selected by {metric}: {best.name} ({getattr(best.metrics, metric):.4f})")
    return best


def save_model(trained: TrainedModel, model_path: str) -> str:
    os.makedirs(os.path.dirname(model_path), exist_ok=True)
    joblib.dump(trained.model, model_path)
    logger.info(f"Model saved to {model_path}")
    return model_path


def load_model(model_path: str):
    logger.info(f"Loading model from {model_path}")
    return joblib.load(model_path)
