"""
Power Plant Output Analysis
============================

A regression pipeline that predicts the net electrical output (PE) of a
combined cycle power plant from ambient conditions.

Modules:
    - data_loader: CSV ingestion, numeric casting and validation
    - explorer: SQL views, exploration queries and scatter plots
    - preprocessing: Seeded random split and feature vector assembly
    - model: Regularized linear regression training
    - prediction: Test-set predictions and export
    - evaluation: RMSE evaluation and reporting
"""

__version__ = "1.0.0"
__author__ = "Power Analysis Team"

FEATURE_COLUMNS = ["AT", "V", "AP", "RH"]
LABEL_COLUMN = "PE"
ALL_COLUMNS = FEATURE_COLUMNS + [LABEL_COLUMN]
