"""
Entity model for the DynamoDB identity stores.

Entities are plain dataclasses holding natural identifiers and payload only.
Partition and sort keys are not fields: they are derived by keys.py whenever
an entity is persisted or addressed.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, NamedTuple, Optional

from ulid import ULID

from . import keys


def new_id() -> str:
    """Generate an opaque entity id."""
    return str(ULID())


def new_stamp() -> str:
    """Generate a fresh concurrency stamp."""
    return str(uuid.uuid4())


class Claim(NamedTuple):
    """A (type, value) statement about a user or role."""
    type: str
    value: str


class UserLoginInfo(NamedTuple):
    """An external login as exchanged with the identity framework."""
    login_provider: str
    provider_key: str
    provider_display_name: Optional[str] = None


@dataclass
class IdentityError:
    """Structured failure carried by IdentityResult."""
    code: str
    description: str


@dataclass
class IdentityResult:
    """
    Outcome of a store write.

    Concurrency conflicts are reported here instead of being raised, so
    callers can reload and retry.
    """
    succeeded: bool
    errors: List[IdentityError] = field(default_factory=list)

    @classmethod
    def success(cls) -> 'IdentityResult':
        return cls(succeeded=True)

    @classmethod
    def failed(cls, *errors: IdentityError) -> 'IdentityResult':
        return cls(succeeded=False, errors=list(errors))


CONCURRENCY_FAILURE = IdentityError(
    code='ConcurrencyFailure',
    description='ConcurrencyStamp mismatch'
)


@dataclass
class DynamoDbUserClaim:
    user_id: str
    claim_type: str
    claim_value: str

    @property
    def key(self) -> keys.KeyPair:
        return keys.user_claim_key(self.user_id, self.claim_type, self.claim_value)

    def to_claim(self) -> Claim:
        return Claim(self.claim_type, self.claim_value)


@dataclass
class DynamoDbUserLogin:
    user_id: str
    login_provider: str
    provider_key: str
    provider_display_name: Optional[str] = None

    @property
    def key(self) -> keys.KeyPair:
        return keys.user_login_key(self.user_id, self.login_provider, self.provider_key)

    def to_login_info(self) -> UserLoginInfo:
        return UserLoginInfo(
            self.login_provider,
            self.provider_key,
            self.provider_display_name
        )


@dataclass
class DynamoDbUserRole:
    """Membership edge between a user and a role name."""
    user_id: str
    role_name: str

    @property
    def key(self) -> keys.KeyPair:
        return keys.user_role_key(self.user_id, self.role_name)


@dataclass
class DynamoDbUserToken:
    user_id: str
    login_provider: str
    name: str
    value: Optional[str] = None

    @property
    def key(self) -> keys.KeyPair:
        return keys.user_token_key(self.user_id, self.login_provider, self.name)


@dataclass
class DynamoDbUser:
    """
    Identity user.

    The claims, logins, roles and tokens collections are in-memory staging
    caches filled by the store's add/get operations. They are never written
    as part of the user row.
    """
    id: str = field(default_factory=new_id)
    user_name: Optional[str] = None
    normalized_user_name: Optional[str] = None
    email: Optional[str] = None
    normalized_email: Optional[str] = None
    email_confirmed: bool = False
    password_hash: Optional[str] = None
    security_stamp: Optional[str] = None
    concurrency_stamp: Optional[str] = field(default_factory=new_stamp)
    phone_number: Optional[str] = None
    phone_number_confirmed: bool = False
    two_factor_enabled: bool = False
    lockout_end: Optional[datetime] = None
    lockout_enabled: bool = False
    access_failed_count: int = 0
    claims: Dict[str, List[str]] = field(default_factory=dict, compare=False, repr=False)
    logins: List[DynamoDbUserLogin] = field(default_factory=list, compare=False, repr=False)
    roles: List[str] = field(default_factory=list, compare=False, repr=False)
    tokens: List[DynamoDbUserToken] = field(default_factory=list, compare=False, repr=False)

    @property
    def key(self) -> keys.KeyPair:
        return keys.user_key(self.id)


@dataclass
class DynamoDbRole:
    """
    Identity role.

    Role claims are embedded as a mapping of claim type to the list of its
    values; each list behaves as a set.
    """
    id: str = field(default_factory=new_id)
    name: Optional[str] = None
    normalized_name: Optional[str] = None
    concurrency_stamp: Optional[str] = field(default_factory=new_stamp)
    claims: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def key(self) -> keys.KeyPair:
        return keys.role_key(self.id)
