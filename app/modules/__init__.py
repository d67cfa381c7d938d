"""Domain modules package."""

from app.modules.cart import models as cart_models  # noqa: F401
from app.modules.certificates import models as certificates_models  # noqa: F401
from app.modules.courses import models as courses_models  # noqa: F401
from app.modules.enrollments import models as enrollments_models  # noqa: F401
from app.modules.identity import models as identity_models  # noqa: F401
from app.modules.notifications import models as notifications_models  # noqa: F401
from app.modules.orders import models as orders_models  # noqa: F401
