"""Domain modules package."""

from app.modules.availability import models as availability_models  # noqa: F401
from app.modules.courses import models as courses_models  # noqa: F401
from app.modules.identity import models as identity_models  # noqa: F401
from app.modules.notifications import models as notifications_models  # noqa: F401
from app.modules.sessions import models as sessions_models  # noqa: F401
