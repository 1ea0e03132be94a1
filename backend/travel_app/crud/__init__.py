from .crud_booking import booking, agent_owns_booking_clause, booking_touches_agent
from . import crud_catalog
from . import crud_payment
from . import crud_refund
from . import crud_notification
from . import crud_reschedule
from . import crud_review
