from .health import health_bp
from .auth import auth_bp
from .providers import provider_bp, public_bp
from .catalog import catalog_bp
from .availability import availability_bp
from .bookings import booking_bp
from .ai import ai_bp
from .business_info import business_info_bp, faq_bp
from .reviews import review_bp, feedback_bp
from .inquiries import inquiry_bp
