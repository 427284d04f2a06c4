"""
User Management Module

User records, the user store and the authentication service: registration,
login, salted scrypt password hashing and JWT issuance/validation.
Token settings are passed in explicitly; nothing here reads configuration.
"""

import hashlib
import hmac
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Any, Dict, Optional

import jwt

from .storage import StorageInterface, StorageRecord
from .errors import AuthenticationError, ConflictError, ValidationError


ADMIN_ROLE = "Admin"
USER_ROLE = "User"


@dataclass
class User(StorageRecord):
    """Registered user; admins may review loans"""
    full_name: str
    email: str
    password_hash: str = ""
    password_salt: str = ""
    is_admin: bool = False

    @property
    def role(self) -> str:
        return ADMIN_ROLE if self.is_admin else USER_ROLE


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful register or login"""
    user_id: str
    full_name: str
    email: str
    is_admin: bool
    token: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "full_name": self.full_name,
            "email": self.email,
            "is_admin": self.is_admin,
            "token": self.token,
        }


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    """User persistence on top of a StorageInterface"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "users"

    def get_by_id(self, user_id: str) -> Optional[User]:
        data = self.storage.load(self.table_name, user_id)
        if data:
            return User.from_dict(data)
        return None

    def get_by_email(self, email: str) -> Optional[User]:
        users = self.storage.find(self.table_name, {"email": normalize_email(email)})
        if not users:
            return None
        return User.from_dict(users[0])

    def email_exists(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def create(self, user: User) -> User:
        if self.email_exists(user.email):
            raise ConflictError("email is already registered", {"email": user.email})
        self.storage.save(self.table_name, user.id, user.to_dict())
        return user

    def update(self, user: User) -> User:
        self.storage.save(self.table_name, user.id, user.to_dict())
        return user

    def delete(self, user_id: str) -> bool:
        return self.storage.delete(self.table_name, user_id)


class AuthService:
    """
    Registration, login and bearer tokens

    Args:
        user_store: Where users live
        jwt_secret: HMAC signing key
        jwt_issuer: `iss` claim written and required on validation
        jwt_expiry_days: Token lifetime
        jwt_algorithm: PyJWT algorithm name
        password_min_length: Minimum length enforced at registration
    """

    def __init__(
        self,
        user_store: UserStore,
        jwt_secret: str,
        jwt_issuer: str = "BankLoanSimulator",
        jwt_expiry_days: int = 30,
        jwt_algorithm: str = "HS256",
        password_min_length: int = 6
    ):
        self.user_store = user_store
        self.jwt_secret = jwt_secret
        self.jwt_issuer = jwt_issuer
        self.jwt_expiry_days = jwt_expiry_days
        self.jwt_algorithm = jwt_algorithm
        self.password_min_length = password_min_length

    def register(self, full_name: str, email: str, password: str) -> AuthResult:
        """Create a regular (non-admin) user and return a token for it"""
        if email and self.user_store.email_exists(email):
            raise ConflictError("email is already registered", {"email": normalize_email(email)})

        if not full_name or not full_name.strip():
            raise ValidationError("full name is required")

        if not email or not email.strip():
            raise ValidationError("email is required")

        if not password or len(password) < self.password_min_length:
            raise ValidationError(
                f"password must be at least {self.password_min_length} characters long"
            )

        user = self._new_user(full_name.strip(), email, password, is_admin=False)
        self.user_store.create(user)
        return self._result_for(user)

    def login(self, email: str, password: str) -> AuthResult:
        user = self.user_store.get_by_email(email or "")
        if not user or not self.verify_password(user, password or ""):
            raise AuthenticationError("invalid email or password")
        return self._result_for(user)

    def ensure_user(self, full_name: str, email: str, password: str, is_admin: bool = False) -> User:
        """Create the user unless the email is already taken (seeding)"""
        existing = self.user_store.get_by_email(email)
        if existing:
            return existing
        return self.user_store.create(self._new_user(full_name, email, password, is_admin))

    def issue_token(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user.id,
            "email": user.email,
            "name": user.full_name,
            "role": user.role,
            "iss": self.jwt_issuer,
            "iat": now,
            "exp": now + timedelta(days=self.jwt_expiry_days),
        }
        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    def decode_token(self, token: str) -> str:
        """
        Validate signature, issuer and expiry

        Returns:
            The user id carried in the `sub` claim

        Raises:
            AuthenticationError: If the token is expired or invalid
        """
        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.jwt_algorithm],
                issuer=self.jwt_issuer,
                options={"require": ["exp", "sub", "iss"]}
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("token expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("invalid token")

        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("invalid token")
        return user_id

    def verify_password(self, user: User, password: str) -> bool:
        if not user.password_hash or not user.password_salt:
            return False
        expected = self._hash_password(password, user.password_salt)
        return hmac.compare_digest(expected, user.password_hash)

    def _new_user(self, full_name: str, email: str, password: str, is_admin: bool) -> User:
        now = datetime.now(timezone.utc)
        salt = secrets.token_hex(16)
        return User(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            full_name=full_name,
            email=normalize_email(email),
            password_hash=self._hash_password(password, salt),
            password_salt=salt,
            is_admin=is_admin
        )

    def _result_for(self, user: User) -> AuthResult:
        return AuthResult(
            user_id=user.id,
            full_name=user.full_name,
            email=user.email,
            is_admin=user.is_admin,
            token=self.issue_token(user)
        )

    @staticmethod
    def _hash_password(password: str, salt: str) -> str:
        """Hash password with salt using scrypt"""
        return hashlib.scrypt(
            password.encode(),
            salt=salt.encode(),
            n=16384, r=8, p=1
        ).hex()
