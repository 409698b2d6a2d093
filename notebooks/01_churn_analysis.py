# %% [markdown]
# # Telecom Customer Churn Analysis
# **Goal**: Clean the telecom customer extract, fit two baseline churn models and export the customers most likely to leave.
#
# **Key Questions**:
# 1. What is the overall churn rate?
# 2. Which optional services are associated with lower churn?
# 3. Which baseline model ranks churners better?
# 4. How many customers fall into each risk segment?

# %%
import pandas as pd

from telecom_churn.pipeline import run_pipeline
from telecom_churn.ml.features import service_adoption_summary
from telecom_churn.ml.risk import RiskProfiler
from telecom_churn.utils.config import settings

pd.set_option("display.max_columns", 50)

# %% [markdown]
# ## 1. Run the Pipeline
# Paths, seed and cut-offs come from `settings` (override through `.env`).

# %%
result = run_pipeline(settings)
customers = result.customers
print(f"Dataset Shape: {customers.shape}")

# %% [markdown]
# ### Data Dictionary
# Column descriptions shipped with the extract (decoded from latin-1).

# %%
print(result.data_dictionary.to_string(index=False))

# %% [markdown]
# ## 2. Data Quality
# Blanks on service fields that the recoding rules could not explain, and
# values set on services the customer does not have.

# %%
report = result.cleaning_report
print(f"Recoded values: {report.recoded}")
print(f"Imputed medians: {report.imputed_medians}")
print(report.unexplained_missing.groupby("field").size())
print(report.conflicting_values.groupby("field").size())

# %% [markdown]
# ## 3. Overall Churn Rate

# %%
churn_rate = customers["churned"].eq("Yes").mean() * 100
print(f"Overall Churn Rate: {churn_rate:.2f}%")

# %% [markdown]
# ## 4. Service Adoption vs. Churn

# %%
print(service_adoption_summary(customers).sort_values("churn_rate_adopters"))

# %% [markdown]
# ### Business Insight:
# - Protective services (online security, premium tech support) are expected to show the widest gap between adopters and non-adopters.

# %% [markdown]
# ## 5. Model Comparison

# %%
comparison = pd.DataFrame(
    [{"model": m.name, **m.metrics.model_dump()} for m in result.models]
).set_index("model")
print(comparison[["accuracy", "sensitivity", "specificity", "f1", "auc"]])
print(f"Selected model: {result.best_model.name}")

# %% [markdown]
# ## 6. Risk Segments

# %%
profiler = RiskProfiler(settings.RISK_MEDIUM_CUTOFF, settings.RISK_HIGH_CUTOFF)
print(profiler.segment_summary(result.scored))
print(result.high_risk.head(10))
