"""
API Routes Package
"""
from . import (
    health,
    auth,
    agents,
    ai,
    vendors,
    purchase_goods,
    workflows,
    checkpoints,
)
