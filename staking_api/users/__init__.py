"""
User accounts, identified publicly by wallet address.
"""

from staking_api.users.models import AuthType, User, UserRole
from staking_api.users.service import UserService
