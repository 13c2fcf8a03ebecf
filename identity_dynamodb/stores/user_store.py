"""
DynamoDB user store.

This module translates the identity framework's user store calls into
operations on the single identity table:
- User rows: point reads/writes by derived key, lookups via the
  NormalizedEmail and NormalizedUserName indexes
- Claim, login, role membership and token rows: written and deleted one row
  per fact, listed via the base table or the UserId index
- Reverse lookups (users in role, users for claim, user by login) via their
  indexes followed by a batch load of the owning users

Follows steering rules:
- Fail fast on invalid input (before any DynamoDB call)
- Not found is a normal outcome (None or empty list)
- Concurrency conflicts are results, not exceptions
- Explicit error handling; DynamoDB errors propagate unchanged

Deleting a user removes the user row only. Claim, login, role and token rows
owned by the user are left in place.
"""

from datetime import datetime
from typing import Any, Iterable, List, Optional, Type

from .. import keys
from ..config import OptionsMonitor
from ..logger import logged_operation
from ..models import (
    Claim,
    DynamoDbUser,
    DynamoDbUserClaim,
    DynamoDbUserLogin,
    DynamoDbUserRole,
    DynamoDbUserToken,
    IdentityResult,
    UserLoginInfo,
)
from ..schema import (
    CLAIM_INDEX,
    LOGIN_INDEX,
    NORMALIZED_EMAIL_INDEX,
    NORMALIZED_USER_NAME_INDEX,
    ROLE_NAME_INDEX,
    USER_ID_INDEX,
)
from ..serialization import (
    AttributeMap,
    from_user_claim_item,
    from_user_item,
    from_user_login_item,
    from_user_role_item,
    from_user_token_item,
    to_user_claim_item,
    to_user_item,
    to_user_login_item,
    to_user_role_item,
    to_user_token_item,
)
from ..validation import require, require_all, throw_if_cancelled
from .base import Cancel, TUser, UserStoreBase
from .common import DynamoDbStoreCommon


class DynamoDbUserStore(DynamoDbStoreCommon, UserStoreBase[TUser]):
    """
    User store backed by the single identity table.

    Args:
        options_monitor: Shared options; its alias registry decides the table
        database: boto3 DynamoDB client, defaults to options.database
        user_type: DynamoDbUser subclass to materialize

    Raises:
        ArgumentNullError: If options_monitor is None or no client is available
    """

    log_name = 'user-store'

    def __init__(
        self,
        options_monitor: OptionsMonitor,
        database: Any = None,
        user_type: Type[TUser] = DynamoDbUser
    ):
        super().__init__(options_monitor, database)
        self.user_type = user_type

    # Basic CRUD

    @logged_operation('create')
    async def create(self, user: TUser, cancel_event: Cancel = None) -> IdentityResult:
        require(user, 'user')
        throw_if_cancelled(cancel_event, 'create')

        await self.backend.put_item(to_user_item(user))

        return IdentityResult.success()

    @logged_operation('update')
    async def update(self, user: TUser, cancel_event: Cancel = None) -> IdentityResult:
        """
        Persist user changes under optimistic concurrency.

        Returns:
            Success with a fresh concurrency stamp on the user, or a failed
            result with code ConcurrencyFailure when the stored stamp differs
            (or the user no longer exists). Nothing is written on failure.
        """
        require(user, 'user')
        throw_if_cancelled(cancel_event, 'update')

        return await self._save_if_current(user, to_user_item, cancel_event)

    @logged_operation('delete')
    async def delete(self, user: TUser, cancel_event: Cancel = None) -> IdentityResult:
        require(user, 'user')
        throw_if_cancelled(cancel_event, 'delete')

        await self.backend.delete_item(user.key.to_key())

        return IdentityResult.success()

    @logged_operation('find-by-id')
    async def find_by_id(self, user_id: str, cancel_event: Cancel = None) -> Optional[TUser]:
        require(user_id, 'user_id')
        throw_if_cancelled(cancel_event, 'find_by_id')

        item = await self.backend.get_item(keys.user_key(user_id).to_key())
        return self._to_user(item) if item else None

    @logged_operation('find-by-email')
    async def find_by_email(self, normalized_email: str, cancel_event: Cancel = None) -> Optional[TUser]:
        """
        Find the user with the given normalized email.

        If several users share the value, whichever the index returns first
        is returned.
        """
        require(normalized_email, 'normalized_email')
        throw_if_cancelled(cancel_event, 'find_by_email')

        return await self._find_one_by_index(
            NORMALIZED_EMAIL_INDEX, 'NormalizedEmail', normalized_email
        )

    @logged_operation('find-by-name')
    async def find_by_name(self, normalized_user_name: str, cancel_event: Cancel = None) -> Optional[TUser]:
        require(normalized_user_name, 'normalized_user_name')
        throw_if_cancelled(cancel_event, 'find_by_name')

        return await self._find_one_by_index(
            NORMALIZED_USER_NAME_INDEX, 'NormalizedUserName', normalized_user_name
        )

    async def _find_one_by_index(self, index_name: str, attribute: str, value: str) -> Optional[TUser]:
        items = await self.backend.query(
            f'{attribute} = :value',
            {':value': {'S': value}},
            index_name=index_name,
            limit=1
        )
        return self._to_user(items[0]) if items else None

    # Claims

    @logged_operation('add-claims')
    async def add_claims(self, user: TUser, claims: Iterable[Claim], cancel_event: Cancel = None) -> None:
        """
        Write one row per claim. An empty claim list makes no call at all.
        """
        require_all(user=user, claims=claims)
        throw_if_cancelled(cancel_event, 'add_claims')
        claims = list(claims)
        if not claims:
            return

        rows = [DynamoDbUserClaim(user.id, claim.type, claim.value) for claim in claims]
        await self.backend.batch_write(puts=_distinct_items(rows, to_user_claim_item))

        for claim in claims:
            values = user.claims.setdefault(claim.type, [])
            if claim.value not in values:
                values.append(claim.value)

    @logged_operation('get-claims')
    async def get_claims(self, user: TUser, cancel_event: Cancel = None) -> List[Claim]:
        require(user, 'user')
        throw_if_cancelled(cancel_event, 'get_claims')

        rows = [
            from_user_claim_item(item)
            for item in await self._query_owned(user.id, keys.CLAIM_PREFIX)
        ]

        user.claims = {}
        for row in rows:
            user.claims.setdefault(row.claim_type, []).append(row.claim_value)

        return [row.to_claim() for row in rows]

    @logged_operation('remove-claims')
    async def remove_claims(self, user: TUser, claims: Iterable[Claim], cancel_event: Cancel = None) -> None:
        require_all(user=user, claims=claims)
        throw_if_cancelled(cancel_event, 'remove_claims')
        claims = list(claims)
        if not claims:
            return

        rows = [DynamoDbUserClaim(user.id, claim.type, claim.value) for claim in claims]
        await self.backend.batch_write(deletes=_distinct_keys(rows))

        for claim in claims:
            _discard_claim(user, claim)

    @logged_operation('replace-claim')
    async def replace_claim(
        self, user: TUser, claim: Claim, new_claim: Claim, cancel_event: Cancel = None
    ) -> None:
        require_all(user=user, claim=claim, new_claim=new_claim)
        throw_if_cancelled(cancel_event, 'replace_claim')

        await self.backend.delete_item(
            DynamoDbUserClaim(user.id, claim.type, claim.value).key.to_key()
        )
        throw_if_cancelled(cancel_event, 'replace_claim')
        await self.backend.put_item(
            to_user_claim_item(DynamoDbUserClaim(user.id, new_claim.type, new_claim.value))
        )

        _discard_claim(user, claim)
        values = user.claims.setdefault(new_claim.type, [])
        if new_claim.value not in values:
            values.append(new_claim.value)

    @logged_operation('get-users-for-claim')
    async def get_users_for_claim(self, claim: Claim, cancel_event: Cancel = None) -> List[TUser]:
        require(claim, 'claim')
        throw_if_cancelled(cancel_event, 'get_users_for_claim')

        # Rows with an empty claim type or value are not in the claim index
        if claim.type == '' or claim.value == '':
            return []

        items = await self.backend.query(
            'ClaimType = :claim_type AND ClaimValue = :claim_value',
            {
                ':claim_type': {'S': claim.type},
                ':claim_value': {'S': claim.value},
            },
            index_name=CLAIM_INDEX
        )
        return await self._load_users(from_user_claim_item(item).user_id for item in items)

    # Logins

    @logged_operation('add-login')
    async def add_login(self, user: TUser, login: UserLoginInfo, cancel_event: Cancel = None) -> None:
        require_all(user=user, login=login)
        throw_if_cancelled(cancel_event, 'add_login')

        row = DynamoDbUserLogin(
            user_id=user.id,
            login_provider=login.login_provider,
            provider_key=login.provider_key,
            provider_display_name=login.provider_display_name,
        )
        await self.backend.put_item(to_user_login_item(row))

        user.logins = [existing for existing in user.logins if existing.key != row.key]
        user.logins.append(row)

    @logged_operation('get-logins')
    async def get_logins(self, user: TUser, cancel_event: Cancel = None) -> List[UserLoginInfo]:
        require(user, 'user')
        throw_if_cancelled(cancel_event, 'get_logins')

        user.logins = [
            from_user_login_item(item)
            for item in await self._query_owned(user.id, keys.LOGIN_PREFIX)
        ]
        return [login.to_login_info() for login in user.logins]

    @logged_operation('remove-login')
    async def remove_login(
        self, user: TUser, login_provider: str, provider_key: str, cancel_event: Cancel = None
    ) -> None:
        require_all(user=user, login_provider=login_provider, provider_key=provider_key)
        throw_if_cancelled(cancel_event, 'remove_login')

        key = keys.user_login_key(user.id, login_provider, provider_key)
        await self.backend.delete_item(key.to_key())

        user.logins = [login for login in user.logins if login.key != key]

    @logged_operation('find-by-login')
    async def find_by_login(
        self, login_provider: str, provider_key: str, cancel_event: Cancel = None
    ) -> Optional[TUser]:
        """
        Find the user owning an external login.

        The login row is located through the LoginProvider-ProviderKey index,
        then the owning user is loaded by id.
        """
        require_all(login_provider=login_provider, provider_key=provider_key)
        throw_if_cancelled(cancel_event, 'find_by_login')

        items = await self.backend.query(
            'LoginProvider = :login_provider AND ProviderKey = :provider_key',
            {
                ':login_provider': {'S': login_provider},
                ':provider_key': {'S': provider_key},
            },
            index_name=LOGIN_INDEX,
            limit=1
        )
        if not items:
            return None

        login = from_user_login_item(items[0])
        throw_if_cancelled(cancel_event, 'find_by_login')
        item = await self.backend.get_item(keys.user_key(login.user_id).to_key())
        return self._to_user(item) if item else None

    # Roles

    @logged_operation('add-to-role')
    async def add_to_role(self, user: TUser, role_name: str, cancel_event: Cancel = None) -> None:
        require_all(user=user, role_name=role_name)
        throw_if_cancelled(cancel_event, 'add_to_role')

        await self.backend.put_item(to_user_role_item(DynamoDbUserRole(user.id, role_name)))

        if role_name not in user.roles:
            user.roles.append(role_name)

    @logged_operation('remove-from-role')
    async def remove_from_role(self, user: TUser, role_name: str, cancel_event: Cancel = None) -> None:
        require_all(user=user, role_name=role_name)
        throw_if_cancelled(cancel_event, 'remove_from_role')

        await self.backend.delete_item(keys.user_role_key(user.id, role_name).to_key())

        user.roles = [name for name in user.roles if name != role_name]

    @logged_operation('get-roles')
    async def get_roles(self, user: TUser, cancel_event: Cancel = None) -> List[str]:
        require(user, 'user')
        throw_if_cancelled(cancel_event, 'get_roles')

        items = await self.backend.query(
            'PartitionKey = :partition_key AND begins_with(SortKey, :prefix)',
            {
                ':partition_key': {'S': keys.user_partition(user.id)},
                ':prefix': {'S': keys.USER_ROLE_PREFIX},
            }
        )
        user.roles = [from_user_role_item(item).role_name for item in items]
        return list(user.roles)

    @logged_operation('is-in-role')
    async def is_in_role(self, user: TUser, role_name: str, cancel_event: Cancel = None) -> bool:
        require_all(user=user, role_name=role_name)
        throw_if_cancelled(cancel_event, 'is_in_role')

        item = await self.backend.get_item(keys.user_role_key(user.id, role_name).to_key())
        return item is not None

    @logged_operation('get-users-in-role')
    async def get_users_in_role(self, role_name: str, cancel_event: Cancel = None) -> List[TUser]:
        require(role_name, 'role_name')
        throw_if_cancelled(cancel_event, 'get_users_in_role')

        items = await self.backend.query(
            'RoleName = :role_name',
            {':role_name': {'S': role_name}},
            index_name=ROLE_NAME_INDEX
        )
        return await self._load_users(from_user_role_item(item).user_id for item in items)

    # Authentication tokens

    @logged_operation('set-token')
    async def set_token(
        self, user: TUser, login_provider: str, name: str, value: Optional[str],
        cancel_event: Cancel = None
    ) -> None:
        require_all(user=user, login_provider=login_provider, name=name)
        throw_if_cancelled(cancel_event, 'set_token')

        token = DynamoDbUserToken(user.id, login_provider, name, value)
        await self.backend.put_item(to_user_token_item(token))

        user.tokens = [existing for existing in user.tokens if existing.key != token.key]
        user.tokens.append(token)

    @logged_operation('get-token')
    async def get_token(
        self, user: TUser, login_provider: str, name: str, cancel_event: Cancel = None
    ) -> Optional[str]:
        require_all(user=user, login_provider=login_provider, name=name)
        throw_if_cancelled(cancel_event, 'get_token')

        item = await self.backend.get_item(
            keys.user_token_key(user.id, login_provider, name).to_key()
        )
        return from_user_token_item(item).value if item else None

    @logged_operation('remove-token')
    async def remove_token(
        self, user: TUser, login_provider: str, name: str, cancel_event: Cancel = None
    ) -> None:
        require_all(user=user, login_provider=login_provider, name=name)
        throw_if_cancelled(cancel_event, 'remove_token')

        key = keys.user_token_key(user.id, login_provider, name)
        await self.backend.delete_item(key.to_key())

        user.tokens = [token for token in user.tokens if token.key != key]

    # Lockout (in memory; persisted by update)

    async def get_lockout_end_date(self, user: TUser, cancel_event: Cancel = None) -> Optional[datetime]:
        require(user, 'user')
        return user.lockout_end

    async def set_lockout_end_date(
        self, user: TUser, lockout_end: Optional[datetime], cancel_event: Cancel = None
    ) -> None:
        require(user, 'user')
        user.lockout_end = lockout_end

    async def get_lockout_enabled(self, user: TUser, cancel_event: Cancel = None) -> bool:
        require(user, 'user')
        return user.lockout_enabled

    async def set_lockout_enabled(self, user: TUser, enabled: bool, cancel_event: Cancel = None) -> None:
        require(user, 'user')
        user.lockout_enabled = enabled

    async def get_access_failed_count(self, user: TUser, cancel_event: Cancel = None) -> int:
        require(user, 'user')
        return user.access_failed_count

    async def increment_access_failed_count(self, user: TUser, cancel_event: Cancel = None) -> int:
        require(user, 'user')
        user.access_failed_count += 1
        return user.access_failed_count

    async def reset_access_failed_count(self, user: TUser, cancel_event: Cancel = None) -> None:
        require(user, 'user')
        user.access_failed_count = 0

    # Identity fields (in memory; persisted by update)

    async def get_user_id(self, user: TUser, cancel_event: Cancel = None) -> str:
        require(user, 'user')
        return user.id

    async def get_user_name(self, user: TUser, cancel_event: Cancel = None) -> Optional[str]:
        require(user, 'user')
        return user.user_name

    async def set_user_name(self, user: TUser, user_name: Optional[str], cancel_event: Cancel = None) -> None:
        require(user, 'user')
        user.user_name = user_name

    async def get_normalized_user_name(self, user: TUser, cancel_event: Cancel = None) -> Optional[str]:
        require(user, 'user')
        return user.normalized_user_name

    async def set_normalized_user_name(
        self, user: TUser, normalized_name: Optional[str], cancel_event: Cancel = None
    ) -> None:
        require(user, 'user')
        user.normalized_user_name = normalized_name

    async def get_email(self, user: TUser, cancel_event: Cancel = None) -> Optional[str]:
        require(user, 'user')
        return user.email

    async def set_email(self, user: TUser, email: Optional[str], cancel_event: Cancel = None) -> None:
        require(user, 'user')
        user.email = email

    async def get_email_confirmed(self, user: TUser, cancel_event: Cancel = None) -> bool:
        require(user, 'user')
        return user.email_confirmed

    async def set_email_confirmed(self, user: TUser, confirmed: bool, cancel_event: Cancel = None) -> None:
        require(user, 'user')
        user.email_confirmed = confirmed

    async def get_normalized_email(self, user: TUser, cancel_event: Cancel = None) -> Optional[str]:
        require(user, 'user')
        return user.normalized_email

    async def set_normalized_email(
        self, user: TUser, normalized_email: Optional[str], cancel_event: Cancel = None
    ) -> None:
        require(user, 'user')
        user.normalized_email = normalized_email

    async def get_password_hash(self, user: TUser, cancel_event: Cancel = None) -> Optional[str]:
        require(user, 'user')
        return user.password_hash

    async def set_password_hash(
        self, user: TUser, password_hash: Optional[str], cancel_event: Cancel = None
    ) -> None:
        require(user, 'user')
        user.password_hash = password_hash

    async def has_password(self, user: TUser, cancel_event: Cancel = None) -> bool:
        require(user, 'user')
        return bool(user.password_hash)

    async def get_security_stamp(self, user: TUser, cancel_event: Cancel = None) -> Optional[str]:
        require(user, 'user')
        return user.security_stamp

    async def set_security_stamp(self, user: TUser, stamp: Optional[str], cancel_event: Cancel = None) -> None:
        require(user, 'user')
        user.security_stamp = stamp

    async def get_phone_number(self, user: TUser, cancel_event: Cancel = None) -> Optional[str]:
        require(user, 'user')
        return user.phone_number

    async def set_phone_number(
        self, user: TUser, phone_number: Optional[str], cancel_event: Cancel = None
    ) -> None:
        require(user, 'user')
        user.phone_number = phone_number

    async def get_phone_number_confirmed(self, user: TUser, cancel_event: Cancel = None) -> bool:
        require(user, 'user')
        return user.phone_number_confirmed

    async def set_phone_number_confirmed(
        self, user: TUser, confirmed: bool, cancel_event: Cancel = None
    ) -> None:
        require(user, 'user')
        user.phone_number_confirmed = confirmed

    async def get_two_factor_enabled(self, user: TUser, cancel_event: Cancel = None) -> bool:
        require(user, 'user')
        return user.two_factor_enabled

    async def set_two_factor_enabled(self, user: TUser, enabled: bool, cancel_event: Cancel = None) -> None:
        require(user, 'user')
        user.two_factor_enabled = enabled

    # Helpers

    def _to_user(self, item: AttributeMap) -> TUser:
        return from_user_item(item, self.user_type)

    async def _query_owned(self, user_id: str, prefix: str) -> List[AttributeMap]:
        """Rows owned by a user whose sort key starts with prefix."""
        return await self.backend.query(
            'UserId = :user_id AND begins_with(SortKey, :prefix)',
            {
                ':user_id': {'S': user_id},
                ':prefix': {'S': prefix},
            },
            index_name=USER_ID_INDEX
        )

    async def _load_users(self, user_ids: Iterable[str]) -> List[TUser]:
        """Batch load the distinct users, in first-seen order."""
        distinct = list(dict.fromkeys(user_ids))
        if not distinct:
            return []

        items = await self.backend.batch_get(
            [keys.user_key(user_id).to_key() for user_id in distinct]
        )
        users = {user.id: user for user in map(self._to_user, items)}
        return [users[user_id] for user_id in distinct if user_id in users]


def _distinct_items(rows: List[Any], to_item: Any) -> List[AttributeMap]:
    # A batch request may not contain the same key twice
    by_key = {row.key: to_item(row) for row in rows}
    return list(by_key.values())


def _distinct_keys(rows: List[Any]) -> List[AttributeMap]:
    return [key.to_key() for key in dict.fromkeys(row.key for row in rows)]


def _discard_claim(user: DynamoDbUser, claim: Claim) -> None:
    values = user.claims.get(claim.type)
    if values is None:
        return
    if claim.value in values:
        values.remove(claim.value)
    if not values:
        del user.claims[claim.type]
