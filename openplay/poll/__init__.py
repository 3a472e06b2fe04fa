"""Poll options and vote aggregation for Open Play events."""

from .models import PollOption, VoteSubmission, default_options
from .tally import VoteTally

__all__ = ["PollOption", "VoteSubmission", "VoteTally", "default_options"]
