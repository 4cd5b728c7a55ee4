"""
Exploratory Data Analysis Module
================================

Read-only SQL exploration and visualization of the power plant data.

Functions:
    - SQLExplorer: Temporary views and SQL queries over DataFrames
    - plot_scatter: Predictor vs power scatter plot
    - plot_correlation_matrix: Correlation heatmap
    - show: Print the first rows of a query result
    - generate_eda_report: Full EDA report with all visualizations
"""

import logging
import sqlite3
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns

from . import ALL_COLUMNS, LABEL_COLUMN

logger = logging.getLogger(__name__)

plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")

# name -> (query template, x column, y column)
EXPLORATION_QUERIES: Dict[str, Tuple[str, Optional[str], Optional[str]]] = {
    "full_table": ("SELECT * FROM {view}", None, None),
    "temperature_vs_power": (
        "SELECT AT AS Temperature, PE AS Power FROM {view}", "Temperature", "Power"
    ),
    "power_vs_exhaust_vacuum": (
        "SELECT PE AS Power, V AS ExhaustVacuum FROM {view}", "ExhaustVacuum", "Power"
    ),
    "power_vs_pressure": (
        "SELECT PE AS Power, AP AS Pressure FROM {view}", "Pressure", "Power"
    ),
    "power_vs_humidity": (
        "SELECT PE AS Power, RH AS Humidity FROM {view}", "Humidity", "Power"
    ),
}


def vectors_as_text(df: pd.DataFrame) -> pd.DataFrame:
    """Copy of ``df`` with ndarray cells rendered as "[v1,v2,...]" strings."""
    table = df.copy()
    for col in table.columns:
        if table[col].dtype == object and table[col].map(
            lambda v: isinstance(v, np.ndarray)
        ).any():
            table[col] = table[col].map(
                lambda v: "[" + ",".join(repr(float(x)) for x in v) + "]"
                if isinstance(v, np.ndarray) else v
            )
    return table


def show(df: pd.DataFrame, n: int = 20, title: Optional[str] = None) -> None:
    """
    Print the first ``n`` rows of a DataFrame, vectors as text.

    Args:
        df: Rows to print
        n: Number of rows to show
        title: Optional header line
    """
    if title:
        print(f"\n{title}")
    print(vectors_as_text(df.head(n)).to_string(index=False))
    if len(df) > n:
        print(f"only showing top {n} rows")


class SQLExplorer:
    """
    In-memory SQL catalog for DataFrames registered as temporary views.

    Vector columns are stored as text so they can still be selected.
    """

    def __init__(self):
        self.connection = sqlite3.connect(":memory:")
        self.connection.execute("PRAGMA query_only = ON")
        self.views: List[str] = []

    def create_or_replace_temp_view(self, df: pd.DataFrame, name: str) -> None:
        """
        Register ``df`` under ``name``, replacing any previous view.

        Args:
            df: DataFrame to expose
            name: View name used in queries
        """
        table = vectors_as_text(df)

        # Writes are only allowed while a view is being (re)registered
        self.connection.execute("PRAGMA query_only = OFF")
        try:
            table.to_sql(name, self.connection, if_exists="replace", index=False)
        finally:
            self.connection.execute("PRAGMA query_only = ON")
        if name not in self.views:
            self.views.append(name)
        logger.info(f"Registered view '{name}' ({len(table)} rows)")

    def sql(self, query: str) -> pd.DataFrame:
        """
        Run a query against the registered views.

        Args:
            query: SQL SELECT statement

        Returns:
            Query result as a DataFrame

        Raises:
            ValueError: If the statement is not a SELECT/WITH query
            pandas.errors.DatabaseError: If the query tries to write
        """
        if not query.lstrip().upper().startswith(("SELECT", "WITH")):
            raise ValueError("Only read-only SELECT queries are supported")

        logger.debug(f"Running query: {query}")
        return pd.read_sql_query(query, self.connection)

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> 'SQLExplorer':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def run_exploration_queries(
    explorer: SQLExplorer,
    view_name: str = "PowerAnalysis"
) -> Dict[str, pd.DataFrame]:
    """
    Run every exploration query against a registered view.

    Args:
        explorer: SQLExplorer holding the view
        view_name: Name of the view

    Returns:
        Dictionary of query name -> result
    """
    return {
        name: explorer.sql(query.format(view=view_name))
        for name, (query, _, _) in EXPLORATION_QUERIES.items()
    }


def plot_scatter(
    df: pd.DataFrame,
    x: str,
    y: str,
    title: Optional[str] = None,
    figsize: Tuple[int, int] = (8, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Scatter plot of one column against another.

    Args:
        df: DataFrame holding both columns
        x: Column for the horizontal axis
        y: Column for the vertical axis
        title: Plot title (default: "y vs x")
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)
    ax.scatter(df[x], df[y], s=8, alpha=0.5)
    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_title(title or f'{y} vs {x}', fontsize=12, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Scatter plot saved to {save_path}")

    return fig


def plot_correlation_matrix(
    df: pd.DataFrame,
    method: str = 'pearson',
    figsize: Tuple[int, int] = (8, 7),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, pd.DataFrame]:
    """
    Create a correlation heatmap for all numerical columns.

    Args:
        df: DataFrame with numerical data
        method: Correlation method ('pearson', 'spearman', 'kendall')
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Tuple of (Figure, correlation matrix DataFrame)
    """
    corr_matrix = df.select_dtypes(include=[np.number]).corr(method=method)

    fig, ax = plt.subplots(figsize=figsize)

    mask = np.triu(np.ones_like(corr_matrix, dtype=bool), k=1)
    sns.heatmap(
        corr_matrix,
        mask=mask,
        annot=True,
        fmt='.3f',
        cmap='RdYlBu_r',
        center=0,
        square=True,
        linewidths=0.5,
        cbar_kws={"shrink": 0.8, "label": "Correlation"},
        ax=ax,
        vmin=-1,
        vmax=1
    )

    ax.set_title(f'Correlation Matrix ({method.capitalize()})',
                 fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Correlation matrix saved to {save_path}")

    return fig, corr_matrix


def generate_eda_report(
    df: pd.DataFrame,
    output_dir: str = "reports/figures/",
    view_name: str = "PowerAnalysis",
    explorer: Optional[SQLExplorer] = None,
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Generate the exploration report: SQL queries plus visualizations.

    Args:
        df: DataFrame with numeric columns
        output_dir: Directory to save figures
        view_name: Name of the temporary view to register
        explorer: Existing SQLExplorer (a private one is used otherwise)
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing EDA results and file paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    report = {
        "data_shape": df.shape,
        "columns": list(df.columns),
        "figures": [],
        "query_rows": {},
        "correlation_matrix": None,
        "statistics": {}
    }

    logger.info("=" * 60)
    logger.info("STARTING EXPLORATORY DATA ANALYSIS")
    logger.info("=" * 60)

    owns_explorer = explorer is None
    explorer = explorer or SQLExplorer()

    try:
        explorer.create_or_replace_temp_view(df, view_name)
        results = run_exploration_queries(explorer, view_name)
    finally:
        if owns_explorer:
            explorer.close()

    for idx, (name, (_, x, y)) in enumerate(EXPLORATION_QUERIES.items()):
        result = results[name]
        report["query_rows"][name] = len(result)
        if x is None:
            show(result, title=f"{name} ({len(result)} rows)")
            continue

        logger.info(f"Plotting {y} vs {x}...")
        filename = f"{idx:02d}_{name}.png"
        plot_scatter(result, x, y, save_path=str(output_dir / filename))
        report["figures"].append(filename)

    logger.info("Computing correlation matrix...")
    _, corr_matrix = plot_correlation_matrix(
        df,
        save_path=str(output_dir / "05_correlation_matrix.png")
    )
    report["figures"].append("05_correlation_matrix.png")
    report["correlation_matrix"] = corr_matrix.to_dict()

    for col in [c for c in ALL_COLUMNS if c in df.columns]:
        report["statistics"][col] = {
            "mean": float(df[col].mean()),
            "std": float(df[col].std()),
            "min": float(df[col].min()),
            "max": float(df[col].max())
        }

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    logger.info("=" * 60)
    logger.info("EDA COMPLETE - All figures saved to: %s", output_dir)
    logger.info("=" * 60)

    return report


def print_correlation_insights(
    corr_matrix: pd.DataFrame,
    target: str = LABEL_COLUMN,
    threshold: float = 0.5
) -> None:
    """
    Print how strongly each predictor correlates with the label.

    A strong linear relationship suggests a linear model will fit well.

    Args:
        corr_matrix: Correlation matrix DataFrame
        target: Label column
        threshold: Correlation threshold for "strong" correlation
    """
    print("\n" + "=" * 50)
    print("CORRELATION INSIGHTS")
    print("=" * 50)

    if target not in corr_matrix.columns:
        print(f"\nLabel column '{target}' not in correlation matrix")
        print("=" * 50 + "\n")
        return

    correlations = corr_matrix[target].drop(labels=[target])
    ranked = correlations.reindex(correlations.abs().sort_values(ascending=False).index)

    print(f"\nCorrelation with {target}:")
    for col, corr_val in ranked.items():
        direction = "positive" if corr_val > 0 else "negative"
        marker = "•" if abs(corr_val) >= threshold else " "
        print(f"  {marker} {col}: {corr_val:.3f} ({direction})")

    strong = ranked[ranked.abs() >= threshold]
    if len(strong) > 0:
        print(f"\n{len(strong)} predictor(s) with |r| >= {threshold}: "
              "a linear model should capture most of the variance")
    else:
        print(f"\nNo strong linear correlations (|r| >= {threshold})")
        print("  - Consider non-linear models such as decision trees")

    print("=" * 50 + "\n")
