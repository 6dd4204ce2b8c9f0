from fastapi import APIRouter, Depends

from app.core.rate_limit import enforce_rate_limit
from app.schemas.auth import CredentialCheckRequest, CredentialCheckResponse
from app.utils.input_validators import is_valid_email, sanitize_input, validate_password

router = APIRouter(
    prefix="/api/auth",
    tags=["Auth"],
    dependencies=[Depends(enforce_rate_limit("/api/auth"))],
)


@router.post("/validate", response_model=CredentialCheckResponse)
def validate_credentials(body: CredentialCheckRequest) -> CredentialCheckResponse:
    """Check sign-up fields and report every rule that failed.

    Rate limited under the tight ``/api/auth`` policy, so it cannot be used to
    brute-force password rules at volume.
    """
    errors: list[str] = []
    if not is_valid_email(body.email):
        errors.append("Invalid email address")
    errors.extend(validate_password(body.password).errors)

    return CredentialCheckResponse(
        valid=not errors,
        errors=errors,
        display_name=sanitize_input(body.display_name),
    )
