"""Team status workflow: selection action, status updates, withdrawal."""

from hackrank.teams.service import TeamService, parse_status

__all__ = ["TeamService", "parse_status"]
