"""
Capability slots of the identity store contract.

Every user and role capability the identity framework may call is named
here. The defaults raise NotSupportedError, so a provider that only covers
part of the contract fails in a way the host application can detect. The
DynamoDB stores override every slot.
"""

import asyncio
from datetime import datetime
from typing import Generic, Iterable, List, Optional, TypeVar

from ..errors import NotSupportedError
from ..models import Claim, DynamoDbRole, DynamoDbUser, IdentityResult, UserLoginInfo


TUser = TypeVar('TUser', bound=DynamoDbUser)
TRole = TypeVar('TRole', bound=DynamoDbRole)

Cancel = Optional[asyncio.Event]


class UserStoreBase(Generic[TUser]):
    """User store capabilities: CRUD, claims, logins, roles, tokens, lockout."""

    # Basic CRUD

    async def create(self, user: TUser, cancel_event: Cancel = None) -> IdentityResult:
        raise NotSupportedError('create')

    async def update(self, user: TUser, cancel_event: Cancel = None) -> IdentityResult:
        raise NotSupportedError('update')

    async def delete(self, user: TUser, cancel_event: Cancel = None) -> IdentityResult:
        raise NotSupportedError('delete')

    async def find_by_id(self, user_id: str, cancel_event: Cancel = None) -> Optional[TUser]:
        raise NotSupportedError('find_by_id')

    async def find_by_name(self, normalized_user_name: str, cancel_event: Cancel = None) -> Optional[TUser]:
        raise NotSupportedError('find_by_name')

    async def find_by_email(self, normalized_email: str, cancel_event: Cancel = None) -> Optional[TUser]:
        raise NotSupportedError('find_by_email')

    # Claims

    async def add_claims(self, user: TUser, claims: Iterable[Claim], cancel_event: Cancel = None) -> None:
        raise NotSupportedError('add_claims')

    async def get_claims(self, user: TUser, cancel_event: Cancel = None) -> List[Claim]:
        raise NotSupportedError('get_claims')

    async def remove_claims(self, user: TUser, claims: Iterable[Claim], cancel_event: Cancel = None) -> None:
        raise NotSupportedError('remove_claims')

    async def replace_claim(
        self, user: TUser, claim: Claim, new_claim: Claim, cancel_event: Cancel = None
    ) -> None:
        raise NotSupportedError('replace_claim')

    async def get_users_for_claim(self, claim: Claim, cancel_event: Cancel = None) -> List[TUser]:
        raise NotSupportedError('get_users_for_claim')

    # Logins

    async def add_login(self, user: TUser, login: UserLoginInfo, cancel_event: Cancel = None) -> None:
        raise NotSupportedError('add_login')

    async def get_logins(self, user: TUser, cancel_event: Cancel = None) -> List[UserLoginInfo]:
        raise NotSupportedError('get_logins')

    async def remove_login(
        self, user: TUser, login_provider: str, provider_key: str, cancel_event: Cancel = None
    ) -> None:
        raise NotSupportedError('remove_login')

    async def find_by_login(
        self, login_provider: str, provider_key: str, cancel_event: Cancel = None
    ) -> Optional[TUser]:
        raise NotSupportedError('find_by_login')

    # Roles

    async def add_to_role(self, user: TUser, role_name: str, cancel_event: Cancel = None) -> None:
        raise NotSupportedError('add_to_role')

    async def remove_from_role(self, user: TUser, role_name: str, cancel_event: Cancel = None) -> None:
        raise NotSupportedError('remove_from_role')

    async def get_roles(self, user: TUser, cancel_event: Cancel = None) -> List[str]:
        raise NotSupportedError('get_roles')

    async def is_in_role(self, user: TUser, role_name: str, cancel_event: Cancel = None) -> bool:
        raise NotSupportedError('is_in_role')

    async def get_users_in_role(self, role_name: str, cancel_event: Cancel = None) -> List[TUser]:
        raise NotSupportedError('get_users_in_role')

    # Authentication tokens

    async def set_token(
        self, user: TUser, login_provider: str, name: str, value: Optional[str],
        cancel_event: Cancel = None
    ) -> None:
        raise NotSupportedError('set_token')

    async def get_token(
        self, user: TUser, login_provider: str, name: str, cancel_event: Cancel = None
    ) -> Optional[str]:
        raise NotSupportedError('get_token')

    async def remove_token(
        self, user: TUser, login_provider: str, name: str, cancel_event: Cancel = None
    ) -> None:
        raise NotSupportedError('remove_token')

    # Lockout

    async def get_lockout_end_date(self, user: TUser, cancel_event: Cancel = None) -> Optional[datetime]:
        raise NotSupportedError('get_lockout_end_date')

    async def set_lockout_end_date(
        self, user: TUser, lockout_end: Optional[datetime], cancel_event: Cancel = None
    ) -> None:
        raise NotSupportedError('set_lockout_end_date')

    async def increment_access_failed_count(self, user: TUser, cancel_event: Cancel = None) -> int:
        raise NotSupportedError('increment_access_failed_count')

    async def reset_access_failed_count(self, user: TUser, cancel_event: Cancel = None) -> None:
        raise NotSupportedError('reset_access_failed_count')


class RoleStoreBase(Generic[TRole]):
    """Role store capabilities: CRUD and embedded role claims."""

    async def create(self, role: TRole, cancel_event: Cancel = None) -> IdentityResult:
        raise NotSupportedError('create')

    async def update(self, role: TRole, cancel_event: Cancel = None) -> IdentityResult:
        raise NotSupportedError('update')

    async def delete(self, role: TRole, cancel_event: Cancel = None) -> IdentityResult:
        raise NotSupportedError('delete')

    async def find_by_id(self, role_id: str, cancel_event: Cancel = None) -> Optional[TRole]:
        raise NotSupportedError('find_by_id')

    async def find_by_name(self, normalized_role_name: str, cancel_event: Cancel = None) -> Optional[TRole]:
        raise NotSupportedError('find_by_name')

    async def add_claim(self, role: TRole, claim: Claim, cancel_event: Cancel = None) -> None:
        raise NotSupportedError('add_claim')

    async def remove_claim(self, role: TRole, claim: Claim, cancel_event: Cancel = None) -> None:
        raise NotSupportedError('remove_claim')

    async def get_claims(self, role: TRole, cancel_event: Cancel = None) -> List[Claim]:
        raise NotSupportedError('get_claims')
