from authentication.domain.models import CustomUser  # noqa: F401
