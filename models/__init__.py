from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .provider import Provider
from .service import Service
from .availability import WeeklyAvailabilitySlot, BlockedDate
from .booking import Booking
from .email_notification import EmailNotification
from .business_info import BusinessInfo
from .faq import Faq
from .review import Review
from .inquiry import CustomerInquiry
from .feedback import Feedback
