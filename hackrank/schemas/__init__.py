"""hackrank schema definitions.

All Pydantic v2 models used across persistence, ranking, consensus and the API.
"""

from hackrank.schemas.catalog import (
    AdminRole,
    DeletedTeam,
    Evaluator,
    Leader,
    ProblemStatement,
    SelectionResult,
    Team,
    TeamMember,
    TeamStatus,
)
from hackrank.schemas.config import (
    ApiConfig,
    AppConfig,
    ConsensusConfig,
    DatabaseConfig,
)
from hackrank.schemas.consensus import (
    ConflictLevel,
    ConflictThresholds,
    ConsensusReport,
    ConsensusRow,
    EvaluatorContribution,
    EvaluatorProgress,
    EvaluatorRanking,
    ProblemStatementOverview,
    ProblemStatementProgress,
    ProblemStatementStatistics,
    TeamConsensus,
)
from hackrank.schemas.evaluation import (
    Evaluation,
    RankedTeamView,
    RankingView,
    TeamRanking,
)

__all__ = [
    "AdminRole",
    "ApiConfig",
    "AppConfig",
    "ConflictLevel",
    "ConflictThresholds",
    "ConsensusConfig",
    "ConsensusReport",
    "ConsensusRow",
    "DatabaseConfig",
    "DeletedTeam",
    "Evaluation",
    "Evaluator",
    "EvaluatorContribution",
    "EvaluatorProgress",
    "EvaluatorRanking",
    "Leader",
    "ProblemStatement",
    "ProblemStatementOverview",
    "ProblemStatementProgress",
    "ProblemStatementStatistics",
    "RankedTeamView",
    "RankingView",
    "SelectionResult",
    "Team",
    "TeamConsensus",
    "TeamMember",
    "TeamRanking",
    "TeamStatus",
]
