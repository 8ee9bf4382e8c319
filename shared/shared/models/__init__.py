from shared.models.user import CurrentUser
from shared.models.pagination import PaginationParams, PaginatedResponse

__all__ = ["CurrentUser", "PaginationParams", "PaginatedResponse"]
