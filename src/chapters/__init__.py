"""Chapters - book club cycles for chat workspaces.

Members suggest books, rank them with ranked-choice voting, read the winner
and discuss it. This package provides the cycle domain model, persistence,
the Slack notification client, and the scheduler that moves every cycle
through its phases as deadlines pass.
"""

__version__ = "0.1.0"
