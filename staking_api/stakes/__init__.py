"""
Staking positions and their audit trail.
"""

from staking_api.stakes.models import Stake, StakeStatus
from staking_api.stakes.service import StakeService
