"""Central model registry: import all models so Alembic autodiscover works."""

from partpulse.database import Base  # noqa: F401

from partpulse.models.user import User  # noqa: F401
from partpulse.models.request import Request, RequestItem, RequestActivity  # noqa: F401
from partpulse.models.approval import Approval  # noqa: F401
from partpulse.models.quote import (  # noqa: F401
    Supplier,
    QuoteRequest,
    QuoteItem,
    SupplierResponse,
)
from partpulse.models.purchase_order import PurchaseOrder, PoLineItem  # noqa: F401
from partpulse.models.catalog import (  # noqa: F401
    SparePart,
    Assembly,
    SubAssembly,
    AssemblyComponent,
)
