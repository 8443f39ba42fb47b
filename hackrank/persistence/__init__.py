"""hackrank persistence layer.

Provides SQLite-backed storage for the catalog (problem statements,
teams, evaluators) and evaluator rankings, plus consensus report export.
"""

from hackrank.persistence.catalog import CatalogStore
from hackrank.persistence.database import close_db, init_db
from hackrank.persistence.evaluations import EvaluationStore
from hackrank.persistence.export import export_json, export_markdown

__all__ = [
    "CatalogStore",
    "EvaluationStore",
    "close_db",
    "export_json",
    "export_markdown",
    "init_db",
]
