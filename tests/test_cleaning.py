import numpy as np
import pandas as pd
import pytest

from telecom_churn.etl.cleaning import (
    INTERNET_DEPENDENT_FIELDS,
    NO_INTERNET_SERVICE,
    NO_PHONE_SERVICE,
    clean_data,
    find_unexplained_missing,
    is_blank,
)
from telecom_churn.utils.exceptions import DataQualityError


def test_no_internet_customers_get_sentinel(customers):
    result = clean_data(customers)
    no_internet = result.data[result.data["internet_service"] == "No"]
    assert len(no_internet) > 0
    for col in INTERNET_DEPENDENT_FIELDS:
        assert (no_internet[col] == NO_INTERNET_SERVICE).all(), col


def test_no_phone_customers_get_sentinel(customers):
    result = clean_data(customers)
    no_phone = result.data[result.data["phone_service"] == "No"]
    assert len(no_phone) > 0
    assert (no_phone["multiple_lines"] == NO_PHONE_SERVICE).all()


def test_clean_data_leaves_no_service_blanks(customers):
    result = clean_data(customers)
    for col in INTERNET_DEPENDENT_FIELDS + ["multiple_lines"]:
        assert not is_blank(result.data[col]).any(), col
    assert not result.report.has_unexplained_missing


def test_clean_data_does_not_mutate_input(customers):
    before = customers.copy()
    clean_data(customers)
    pd.testing.assert_frame_equal(customers, before)


def test_churn_label_from_status():
    df = pd.DataFrame({
        "customer_id": ["a", "b", "c"],
        "customer_status": ["Churned", "Stayed", "Joined"],
        "internet_service": ["Yes", "Yes", "Yes"],
        "phone_service": ["Yes", "Yes", "Yes"],
    })
    assert clean_data(df).data["churned"].tolist() == ["Yes", "No", "No"]


def test_unexplained_blank_is_reported_not_recoded(customers):
    df = customers.copy()
    active = df.index[df["internet_service"] == "Yes"][0]
    df.loc[active, "online_security"] = np.nan

    result = clean_data(df)

    assert pd.isna(result.data.loc[active, "online_security"])
    report = result.report.unexplained_missing
    assert report["field"].tolist() == ["online_security"]
    assert report["customer_id"].tolist() == [df.loc[active, "customer_id"]]
    assert report["prerequisite_value"].tolist() == ["Yes"]


def test_unexplained_blank_is_logged(customers, caplog):
    df = customers.copy()
    active = df.index[df["internet_service"] == "Yes"][0]
    df.loc[active, "streaming_tv"] = ""
    clean_data(df)
    assert "Unexplained missing service values" in caplog.text


def test_strict_mode_raises_on_unexplained_blank(customers):
    df = customers.copy()
    active = df.index[df["phone_service"] == "Yes"][0]
    df.loc[active, "multiple_lines"] = np.nan
    with pytest.raises(DataQualityError):
        clean_data(df, strict=True)


def test_median_imputation_uses_current_batch():
    df = pd.DataFrame({
        "customer_id": ["a", "b", "c", "d"],
        "customer_status": ["Stayed"] * 4,
        "internet_service": ["Yes", "Yes", "Yes", "No"],
        "phone_service": ["Yes", "No", "Yes", "Yes"],
        "avg_monthly_gb_download": [10.0, 20.0, 60.0, np.nan],
        "avg_monthly_long_distance_charges": [5.0, np.nan, 7.0, 100.0],
    })
    result = clean_data(df)
    assert result.data["avg_monthly_gb_download"].tolist() == [10.0, 20.0, 60.0, 20.0]
    assert result.data["avg_monthly_long_distance_charges"].tolist() == [5.0, 7.0, 7.0, 100.0]
    assert result.report.imputed_medians == {
        "avg_monthly_gb_download": 20.0,
        "avg_monthly_long_distance_charges": 7.0,
    }


def test_blank_offer_becomes_none(customers):
    result = clean_data(customers)
    assert not result.data["offer"].isna().any()
    assert "None" in set(result.data["offer"])


def test_find_unexplained_missing_empty_for_clean_data(cleaned):
    assert find_unexplained_missing(cleaned).empty


def test_is_blank():
    s = pd.Series(["Yes", "", "  ", np.nan, None, "No"], dtype=object)
    assert is_blank(s).tolist() == [False, True, True, True, True, False]


def test_service_value_without_internet_is_recoded_and_reported():
    df = pd.DataFrame({
        "customer_id": [f"c{i}" for i in range(20)],
        "customer_status": ["Stayed"] * 20,
        "internet_service": ["No"] * 20,
        "phone_service": ["Yes"] * 20,
        "online_security": ["No"] + [np.nan] * 19,
    })
    result = clean_data(df)

    assert (result.data["online_security"] == NO_INTERNET_SERVICE).all()
    conflicts = result.report.conflicting_values
    assert conflicts["customer_id"].tolist() == ["c0"]
    assert conflicts["field"].tolist() == ["online_security"]
    assert conflicts["value"].tolist() == ["No"]
    assert not result.report.has_unexplained_missing


def test_multiple_lines_without_phone_is_recoded_and_reported():
    df = pd.DataFrame({
        "customer_id": ["a", "b"],
        "customer_status": ["Stayed", "Churned"],
        "internet_service": ["Yes", "Yes"],
        "phone_service": ["No", "Yes"],
        "multiple_lines": ["Yes", "No"],
    })
    result = clean_data(df)
    assert result.data["multiple_lines"].tolist() == [NO_PHONE_SERVICE, "No"]
    assert result.report.conflicting_values["customer_id"].tolist() == ["a"]


def test_strict_mode_raises_on_service_value_without_internet(customers):
    df = customers.copy()
    inactive = df.index[df["internet_service"] == "No"][0]
    df.loc[inactive, "streaming_tv"] = "Yes"
    with pytest.raises(DataQualityError, match="prerequisite service is absent"):
        clean_data(df, strict=True)


def test_clean_fixture_has_no_conflicting_values(customers):
    assert not clean_data(customers).report.has_conflicting_values
