from app.models.user import User
from app.models.batch import Batch
from app.models.order import Order
from app.models.access_grant import AccessGrant
from app.models.order_event import OrderEvent

# add ALL models here
