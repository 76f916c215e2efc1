"""Password tools endpoints.

Single-password check against the local breach index.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_engine
from api.models import BreachCheckRequest, BreachCheckResponse
from breach_check import check_password_breach, format_breach_warning
from scoreme.lookup import LookupEngine


router = APIRouter(tags=["Password Tools"])


@router.post("/breach-check", response_model=BreachCheckResponse)
def check_breach_only(request: BreachCheckRequest, engine: LookupEngine = Depends(get_engine)):
    """Check if password appears in the breach corpus."""
    breach_count = check_password_breach(request.password, engine)

    if breach_count is None:
        return BreachCheckResponse(is_safe=True, message="Could not verify against breach index")
    if breach_count == 0:
        return BreachCheckResponse(
            is_safe=True, message="Password not found in known data breaches", breach_count=0
        )
    return BreachCheckResponse(
        is_safe=False, message=format_breach_warning(breach_count), breach_count=breach_count
    )
