import numpy as np
import pandas as pd
import pytest

from telecom_churn.utils.config import Settings

ZIP_CODES = [90001, 90002, 90003, 90004, 90005, 90006, 90007]
UNMATCHED_ZIP = 99999
OFFERS = [None, "Offer A", "Offer B"]

SERVICE_HEADERS = [
    "Online Security", "Online Backup", "Device Protection Plan",
    "Premium Tech Support", "Streaming TV", "Streaming Movies",
    "Streaming Music", "Unlimited Data",
]


def make_customers(n=200, seed=0, internet=None, status=None, tenure=None):
    """
    Raw customer table with the extract's original headers. Optional lists
    override internet service ("Yes"/"No"), customer status and tenure per row.
    """
    rng = np.random.default_rng(seed)
    rows = []
    for i in range(n):
        has_internet = internet[i] if internet is not None else ("Yes" if rng.random() < 0.8 else "No")
        has_phone = "Yes" if rng.random() < 0.9 else "No"
        months = tenure[i] if tenure is not None else int(rng.integers(0, 73))
        contract = rng.choice(["Month-to-Month", "One Year", "Two Year"])
        monthly = round(float(rng.uniform(20, 110)), 2)
        long_distance = round(float(rng.uniform(1, 50)), 2) if has_phone == "Yes" else np.nan
        total_charges = round(monthly * months, 2)
        total_ld = round((long_distance if has_phone == "Yes" else 0.0) * months, 2)

        if status is not None:
            customer_status = status[i]
        else:
            churn_p = 0.55 if contract == "Month-to-Month" else 0.08
            if rng.random() < churn_p:
                customer_status = "Churned"
            elif months <= 3:
                customer_status = "Joined"
            else:
                customer_status = "Stayed"

        row = {
            "Customer ID": f"{i:04d}-CUST",
            "Gender": rng.choice(["Male", "Female"]),
            "Age": int(rng.integers(19, 80)),
            "Married": rng.choice(["Yes", "No"]),
            "Number of Dependents": int(rng.integers(0, 4)),
            "City": f"City {i % 5}",
            "Zip Code": UNMATCHED_ZIP if i % 25 == 24 else ZIP_CODES[i % len(ZIP_CODES)],
            "Latitude": 34.0,
            "Longitude": -118.0,
            "Number of Referrals": int(rng.integers(0, 5)),
            "Tenure in Months": months,
            "Offer": OFFERS[int(rng.integers(0, len(OFFERS)))],
            "Phone Service": has_phone,
            "Avg Monthly Long Distance Charges": long_distance,
            "Multiple Lines": rng.choice(["Yes", "No"]) if has_phone == "Yes" else np.nan,
            "Internet Service": has_internet,
            "Internet Type": rng.choice(["Fiber Optic", "DSL", "Cable"]) if has_internet == "Yes" else np.nan,
            "Avg Monthly GB Download": int(rng.integers(2, 85)) if has_internet == "Yes" else np.nan,
        }
        for header in SERVICE_HEADERS:
            row[header] = rng.choice(["Yes", "No"]) if has_internet == "Yes" else np.nan
        row.update({
            "Contract": contract,
            "Paperless Billing": rng.choice(["Yes", "No"]),
            "Payment Method": rng.choice(["Bank Withdrawal", "Credit Card", "Mailed Check"]),
            "Monthly Charge": monthly,
            "Total Charges": total_charges,
            "Total Refunds": 0.0,
            "Total Extra Data Charges": 0,
            "Total Long Distance Charges": total_ld,
            "Total Revenue": round(total_charges + total_ld, 2),
            "Customer Status": customer_status,
            "Churn Category": "Competitor" if customer_status == "Churned" else np.nan,
            "Churn Reason": "Better offer" if customer_status == "Churned" else np.nan,
        })
        rows.append(row)
    return pd.DataFrame(rows)


def make_population():
    return pd.DataFrame({
        "Zip Code": ZIP_CODES,
        "Population": [4879, 43019, 58943, 20000, 43019, 1000, 77000],
    })


def write_inputs(directory, customers, population=None):
    """Writes the three input files and returns Settings pointing at them."""
    directory.mkdir(parents=True, exist_ok=True)
    customer_path = directory / "telecom_customer_churn.csv"
    population_path = directory / "telecom_zipcode_population.csv"
    dictionary_path = directory / "telecom_data_dictionary.csv"

    customers.to_csv(customer_path, index=False)
    (population if population is not None else make_population()).to_csv(population_path, index=False)
    with open(dictionary_path, "w", encoding="latin-1") as handle:
        handle.write("Table,Field,Description\n")
        handle.write("Customer Churn,Customer ID,Identificación única del cliente\n")
        handle.write("Zip Code - Population,Population,Población estimada\n")

    return Settings(
        CUSTOMER_DATA_PATH=str(customer_path),
        ZIPCODE_POPULATION_PATH=str(population_path),
        DATA_DICTIONARY_PATH=str(dictionary_path),
        OUTPUT_DIR=str(directory / "output"),
        FOREST_N_ESTIMATORS=25,
        FOREST_MAX_FEATURES=4,
    )


@pytest.fixture
def raw_customers():
    return make_customers()


@pytest.fixture
def customers(raw_customers):
    from telecom_churn.etl.ingest import standardize_columns
    return standardize_columns(raw_customers)


@pytest.fixture
def zip_population():
    from telecom_churn.etl.ingest import standardize_columns
    return standardize_columns(make_population())


@pytest.fixture
def cleaned(customers):
    from telecom_churn.etl.cleaning import clean_data
    return clean_data(customers).data


@pytest.fixture
def engineered(cleaned, zip_population):
    from telecom_churn.ml.features import engineer_features
    return engineer_features(cleaned, zip_population)


@pytest.fixture
def input_settings(tmp_path, raw_customers):
    return write_inputs(tmp_path / "inputs", raw_customers)
