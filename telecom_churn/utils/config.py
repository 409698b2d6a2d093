import os
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Telecom Churn Report"

    # Paths
    BASE_DIR: str = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    DATA_DIR: str = os.path.join(BASE_DIR, "data")
    CUSTOMER_DATA_PATH: str = os.path.join(DATA_DIR, "raw", "telecom_customer_churn.csv")
    ZIPCODE_POPULATION_PATH: str = os.path.join(DATA_DIR, "raw", "telecom_zipcode_population.csv")
    DATA_DICTIONARY_PATH: str = os.path.join(DATA_DIR, "raw", "telecom_data_dictionary.csv")
    OUTPUT_DIR: str = os.path.join(DATA_DIR, "output")

    # The dictionary ships in a Windows codepage, not UTF-8
    DATA_DICTIONARY_ENCODING: str = "latin-1"

    # Modelling
    RANDOM_STATE: int = 42
    TEST_SIZE: float = 0.3
    DECISION_THRESHOLD: float = 0.5
    LOGISTIC_MAX_ITER: int = 1000
    FOREST_N_ESTIMATORS: int = 500
    FOREST_MAX_FEATURES: int = 4
    SELECTION_METRIC: str = "auc"
    SAVE_MODEL: bool = True

    # Risk segmentation cut-offs: [0, MEDIUM) Low, [MEDIUM, HIGH) Medium, [HIGH, 1] High
    RISK_MEDIUM_CUTOFF: float = 0.3
    RISK_HIGH_CUTOFF: float = 0.6

    # Fail the batch on blanks that the recoding rules cannot explain
    STRICT_DATA_QUALITY: bool = False

    @property
    def OUTPUT_PATH(self):
        return os.path.join(self.OUTPUT_DIR, "high_risk_customers.csv")

    @property
    def MODEL_PATH(self):
        return os.path.join(self.OUTPUT_DIR, "model_registry", "best_model.pkl")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

settings = Settings()
