from models.user import User, UserSession, UserRole
from models.order import Order, OrderCreate, OrderImport, OrderProduct, ProductionStage
from models.production import StageDefinition, ProductionLog
from models.machine import SewingMachine, MachineGroup, MachineOperation, MachineRecommendation
from models.product import CatalogProduct, ProductCreate
from models.sync import SyncResult, OrderSyncOutcome

__all__ = [
    "User", "UserSession", "UserRole",
    "Order", "OrderCreate", "OrderImport", "OrderProduct", "ProductionStage",
    "StageDefinition", "ProductionLog",
    "SewingMachine", "MachineGroup", "MachineOperation", "MachineRecommendation",
    "CatalogProduct", "ProductCreate",
    "SyncResult", "OrderSyncOutcome"
]
