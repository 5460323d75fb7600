from schedule_hub.models.activity_log import ActivityLog  # noqa: F401
from schedule_hub.models.building import Building  # noqa: F401
from schedule_hub.models.notification import Notification, NotificationLevel  # noqa: F401
from schedule_hub.models.person import Person  # noqa: F401
from schedule_hub.models.schedule import LocationType, Schedule  # noqa: F401
from schedule_hub.models.term import Term, TermStatus  # noqa: F401
