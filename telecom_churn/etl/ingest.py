from typing import NamedTuple, Optional

import pandas as pd

from telecom_churn.utils.config import Settings, settings as default_settings
from telecom_churn.utils.exceptions import DataLoadError
from telecom_churn.utils.logger import setup_logger

logger = setup_logger("ETL_Ingest")

REQUIRED_CUSTOMER_COLUMNS = [
    "customer_id", "customer_status", "zip_code", "tenure_in_months",
    "phone_service", "multiple_lines", "internet_service", "internet_type",
    "monthly_charge", "total_revenue", "contract",
    # Counted by service_count; online_security and premium_tech_support are also exported
    "online_security", "online_backup", "device_protection_plan", "premium_tech_support",
    "streaming_tv", "streaming_movies", "streaming_music",
]

REQUIRED_POPULATION_COLUMNS = ["zip_code", "population"]

# Numeric fields the raw extract sometimes ships as text (blank for new customers)
NUMERIC_TEXT_COLUMNS = ["total_charges", "total_revenue"]


class RawInputs(NamedTuple):
    customers: pd.DataFrame
    zip_population: pd.DataFrame
    data_dictionary: pd.DataFrame


def standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Snake-cases headers: 'Tenure in Months' -> 'tenure_in_months'."""
    df = df.copy()
    df.columns = (
        df.columns.str.strip()
        .str.lower()
        .str.replace(r"[^0-9a-z]+", "_", regex=True)
        .str.strip("_")
    )
    return df


def _read_csv(filepath: str, label: str, encoding: Optional[str] = None) -> pd.DataFrame:
    try:
        logger.info(f"Reading {label} from {filepath}")
        df = pd.read_csv(filepath, encoding=encoding)
    except FileNotFoundError as e:
        logger.error(f"Missing {label} file: {filepath}")
        raise DataLoadError(f"{label} file not found: {filepath}") from e
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        logger.error(f"Error reading {label}: {e}")
        raise DataLoadError(f"Could not parse {label} file {filepath}: {e}") from e
    logger.info(f"Successfully read {len(df)} rows.")
    return df


def _require_columns(df: pd.DataFrame, required, label: str):
    missing = [c for c in required if c not in df.columns]
    if missing:
        logger.error(f"{label} is missing columns: {missing}")
        raise DataLoadError(f"{label} is missing required columns: {missing}")


def load_raw_data(filepath: str) -> pd.DataFrame:
    """Reads the customer CSV and normalises its schema."""
    df = standardize_columns(_read_csv(filepath, "customer data"))
    _require_columns(df, REQUIRED_CUSTOMER_COLUMNS, "Customer data")

    df["customer_id"] = df["customer_id"].astype(str)
    for col in NUMERIC_TEXT_COLUMNS:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def load_zipcode_population(filepath: str) -> pd.DataFrame:
    df = standardize_columns(_read_csv(filepath, "zip code population"))
    _require_columns(df, REQUIRED_POPULATION_COLUMNS, "Zip code population")

    df = df[REQUIRED_POPULATION_COLUMNS].copy()
    dupes = df["zip_code"].duplicated()
    if dupes.any():
        # A duplicated key would fan out customer rows on the join
        raise DataLoadError(
            f"Zip code population has duplicated zip codes: {df.loc[dupes, 'zip_code'].tolist()[:5]}"
        )
    df["population"] = pd.to_numeric(df["population"], errors="coerce")
    return df


def load_data_dictionary(filepath: str, encoding: str = "latin-1") -> pd.DataFrame:
    """The dictionary is not UTF-8 encoded, so it is decoded explicitly."""
    return _read_csv(filepath, "data dictionary", encoding=encoding)


def load_inputs(config: Settings = default_settings) -> RawInputs:
    """Reads all three inputs. Any failure aborts before later stages run."""
    customers = load_raw_data(config.CUSTOMER_DATA_PATH)
    zip_population = load_zipcode_population(config.ZIPCODE_POPULATION_PATH)
    dictionary = load_data_dictionary(config.DATA_DICTIONARY_PATH, config.DATA_DICTIONARY_ENCODING)
    logger.info(
        f"Loaded {len(customers)} customers, {len(zip_population)} zip codes, "
        f"{len(dictionary)} dictionary entries."
    )
    return RawInputs(customers, zip_population, dictionary)
