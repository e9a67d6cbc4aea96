"""Import every mapped class so relationship() strings resolve and create_all sees all tables."""

from db.users import User  # noqa: F401
from db.team import Feature, Plan, Role, Team, TeamMember, plan_features  # noqa: F401
from db.inventory.category import InventoryCategory  # noqa: F401
from db.inventory.unit import InventoryUnit  # noqa: F401
from db.inventory.item import InventoryItem  # noqa: F401
from db.inventory.movement import StockMovement  # noqa: F401
