"""
Pydantic schemas for API request/response validation.
"""

# Re-export schemas for convenient imports.
from .proposal import (
    ActionResponse as ActionResponse,
)
from .proposal import (
    BulkCategoryRequest as BulkCategoryRequest,
)
from .proposal import (
    BulkScopeRequest as BulkScopeRequest,
)
from .proposal import (
    FlashMessages as FlashMessages,
)
from .proposal import (
    FormResponse as FormResponse,
)
from .proposal import (
    ProposalListResponse as ProposalListResponse,
)
from .proposal import (
    ProposalResponse as ProposalResponse,
)
from .proposal import (
    ProposalShowResponse as ProposalShowResponse,
)
from .proposal import (
    PublishAnswersRequest as PublishAnswersRequest,
)
