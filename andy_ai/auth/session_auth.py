"""
Username/password authentication for Andy AI
Signed session cookies for the web dashboard, bearer tokens for the mobile app
"""

from fastapi import APIRouter, Body, HTTPException, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, InvalidHashError
from pydantic import ValidationError
import jwt

from andy_ai.database import get_db
from andy_ai.models import User
from andy_ai.schemas import RegisterRequest
from andy_ai.utils.logger import get_logger
from andy_ai.config import settings

logger = get_logger(__name__)

# Create auth router
auth_router = APIRouter(prefix="/api", tags=["authentication"])

# Bearer tokens are optional, the session cookie is tried first
security = HTTPBearer(auto_error=False)

SESSION_USER_KEY = "user_id"


class AuthService:
    """Password hashing and token handling"""

    def __init__(self):
        self.password_hasher = PasswordHasher()
        self.jwt_secret = settings.JWT_SECRET_KEY
        self.jwt_algorithm = settings.JWT_ALGORITHM
        self.jwt_expiration_hours = settings.JWT_EXPIRATION_HOURS

    def hash_password(self, password: str) -> str:
        return self.password_hasher.hash(password)

    def verify_password(self, password: str, hashed: str) -> bool:
        try:
            return self.password_hasher.verify(hashed, password)
        except (VerifyMismatchError, InvalidHashError):
            return False

    def create_jwt_token(self, user_id: int, username: str) -> str:
        """Create JWT token for authenticated user"""
        payload = {
            'user_id': user_id,
            'username': username,
            'exp': datetime.utcnow() + timedelta(hours=self.jwt_expiration_hours),
            'iat': datetime.utcnow(),
            'type': 'access'
        }

        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    def verify_jwt_token(self, token: str) -> Dict[str, Any]:
        """Verify JWT token"""
        try:
            return jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.jwt_algorithm]
            )
        except jwt.ExpiredSignatureError:
            raise HTTPException(status_code=401, detail="Token has expired")
        except jwt.InvalidTokenError:
            raise HTTPException(status_code=401, detail="Invalid token")


# Initialize service
auth_service = AuthService()


def login_user(request: Request, user: User) -> str:
    """Bind the user to the session and hand back a bearer token"""
    request.session[SESSION_USER_KEY] = user.id
    return auth_service.create_jwt_token(user.id, user.username)


def ensure_demo_user(db: Session) -> Optional[User]:
    """Create the test/test123 account used in development"""
    user = db.query(User).filter(User.username == "test").first()
    if user:
        return None

    user = User(
        username="test",
        password=auth_service.hash_password("test123"),
        first_name="Test",
        last_name="User",
        email="test@example.com"
    )
    db.add(user)
    db.commit()
    logger.info("Demo user created: test/test123")
    return user


def _login_failed(message: str) -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": True, "message": message})


# API Endpoints
@auth_router.post("/register")
def register(
    request: Request,
    payload: Any = Body(None),
    db: Session = Depends(get_db)
):
    """Create an account and log it in"""
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid data: expected a JSON object")

    try:
        data = RegisterRequest.model_validate(payload)
    except ValidationError as e:
        messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise HTTPException(status_code=400, detail="Invalid data: " + ", ".join(messages))

    existing = db.query(User).filter(User.username == data.username).first()
    if existing:
        raise HTTPException(status_code=400, detail="Username already exists")

    user = User(
        username=data.username,
        password=auth_service.hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        phone_number=data.phone_number,
        date_of_birth=data.date_of_birth,
        address=data.address,
        city=data.city,
        state=data.state,
        zip_code=data.zip_code,
        ssn=data.ssn
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"Registered new user: {user.username}")
    token = login_user(request, user)

    return {
        "message": "Registration successful",
        "user": {"id": user.id, "username": user.username},
        "token": token
    }


@auth_router.post("/login")
def login(
    request: Request,
    payload: Any = Body(None),
    db: Session = Depends(get_db)
):
    """Authenticate with username and password"""
    payload = payload if isinstance(payload, dict) else {}
    username = payload.get("username")
    password = payload.get("password")
    if not username or not password:
        raise HTTPException(status_code=400, detail="Username and password are required")

    user = db.query(User).filter(User.username == username).first()
    if not user:
        logger.info(f"Login failed for unknown user: {username}")
        return _login_failed("User does not exist")

    if not auth_service.verify_password(password, user.password):
        logger.info(f"Login failed for {username}: wrong password")
        return _login_failed("Incorrect password")

    token = login_user(request, user)

    return {
        "ok": True,
        "message": "Login successful",
        "user": {"id": user.id, "username": user.username},
        "token": token
    }


@auth_router.post("/logout")
async def logout(request: Request):
    """Clear the session"""
    user_id = request.session.pop(SESSION_USER_KEY, None)
    request.session.clear()
    if user_id:
        logger.info(f"User {user_id} logged out")
    return {"message": "Logged out successfully"}


def _resolve_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    db: Session
) -> Optional[User]:
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None and credentials is not None:
        payload = auth_service.verify_jwt_token(credentials.credentials)
        user_id = payload.get('user_id')

    if user_id is None:
        return None

    return db.query(User).filter(User.id == user_id).first()


# Dependency to get current user
async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    user = _resolve_user(request, credentials, db)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    try:
        return _resolve_user(request, credentials, db)
    except HTTPException:
        return None


@auth_router.get("/user")
async def current_user(user: User = Depends(get_current_user)):
    """Return the logged in user's profile"""
    return user.to_public_dict()
