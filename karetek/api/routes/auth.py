from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from loguru import logger
from sqlalchemy.exc import IntegrityError

from karetek.api.deps import get_services, require_user
from karetek.core.identity import Authenticated
from karetek.core.services import Services
from karetek.models.schemas import AuthResponse, LoginRequest, RegisterRequest
from karetek.utils.io_helpers import AuthHelper, ValidationHelper, public_user

router = APIRouter()

INVALID_CREDENTIALS = "Invalid email or password"

@router.post("/auth/register", response_model=AuthResponse, status_code=201)
async def register(request: RegisterRequest, services: Services = Depends(get_services)):
    """Create a password account and sign it in"""

    try:
        validation_errors = ValidationHelper.validate_registration(request.model_dump())
        if validation_errors:
            raise HTTPException(status_code=400, detail=next(iter(validation_errors.values())))

        if await run_in_threadpool(services.repository.get_user_by_email, request.email):
            raise HTTPException(status_code=400, detail="User with this email already exists")

        password_hash = await run_in_threadpool(AuthHelper.hash_password, request.password)
        try:
            user = await run_in_threadpool(
                services.repository.create_user,
                request.email,
                password_hash=password_hash,
                first_name=request.firstName,
                last_name=request.lastName,
                date_of_birth=request.dateOfBirth,
                gender=request.gender,
                phone_number=request.phoneNumber,
            )
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            raise HTTPException(status_code=400, detail="User with this email already exists")

        token = AuthHelper.create_access_token(user["id"], user["email"])
        logger.info(f"Registered user: {user['id']}")

        return AuthResponse(
            message="User registered successfully",
            token=token,
            user=public_user(user)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Registration failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to register user")

@router.post("/auth/login", response_model=AuthResponse)
async def login(request: LoginRequest, services: Services = Depends(get_services)):
    try:
        if not request.email or not request.password:
            raise HTTPException(status_code=400, detail="Email and password are required")

        user = await run_in_threadpool(services.repository.get_user_by_email, request.email)
        if not user or not await run_in_threadpool(
            AuthHelper.verify_password, request.password, user.get("password_hash")
        ):
            raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)

        token = AuthHelper.create_access_token(user["id"], user["email"])
        logger.info(f"User logged in: {user['id']}")

        return AuthResponse(
            message="Login successful",
            token=token,
            user=public_user(user)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to log in")

@router.get("/auth/me")
async def me(
    identity: Authenticated = Depends(require_user),
    services: Services = Depends(get_services),
):
    """Get current user information"""

    try:
        user = await run_in_threadpool(services.repository.get_user, identity.user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return {"user": public_user(user)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get user {identity.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get user")
