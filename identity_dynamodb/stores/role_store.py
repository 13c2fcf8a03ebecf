"""
DynamoDB role store.

Roles are single rows keyed by id, found by name through the NormalizedName
index. Role claims are embedded in the role row as a mapping of claim type to
its values: add_claim and remove_claim only change the in-memory role, and
update persists them.
"""

from typing import Any, List, Optional, Type

from .. import keys
from ..config import OptionsMonitor
from ..logger import logged_operation
from ..models import Claim, DynamoDbRole, IdentityResult
from ..schema import NORMALIZED_NAME_INDEX
from ..serialization import from_role_item, to_role_item
from ..validation import require, require_all, throw_if_cancelled
from .base import Cancel, RoleStoreBase, TRole
from .common import DynamoDbStoreCommon


class DynamoDbRoleStore(DynamoDbStoreCommon, RoleStoreBase[TRole]):
    """
    Role store backed by the single identity table.

    Args:
        options_monitor: Shared options; its alias registry decides the table
        database: boto3 DynamoDB client, defaults to options.database
        role_type: DynamoDbRole subclass to materialize
    """

    log_name = 'role-store'

    def __init__(
        self,
        options_monitor: OptionsMonitor,
        database: Any = None,
        role_type: Type[TRole] = DynamoDbRole
    ):
        super().__init__(options_monitor, database)
        self.role_type = role_type

    @logged_operation('create')
    async def create(self, role: TRole, cancel_event: Cancel = None) -> IdentityResult:
        require(role, 'role')
        throw_if_cancelled(cancel_event, 'create')

        await self.backend.put_item(to_role_item(role))

        return IdentityResult.success()

    @logged_operation('update')
    async def update(self, role: TRole, cancel_event: Cancel = None) -> IdentityResult:
        """
        Persist role changes, embedded claims included.

        Returns:
            Success with a fresh concurrency stamp on the role, or a failed
            result with code ConcurrencyFailure if the stored role carries a
            different stamp. The stored role is left untouched on failure.
        """
        require(role, 'role')
        throw_if_cancelled(cancel_event, 'update')

        return await self._save_if_current(role, to_role_item, cancel_event)

    @logged_operation('delete')
    async def delete(self, role: TRole, cancel_event: Cancel = None) -> IdentityResult:
        require(role, 'role')
        throw_if_cancelled(cancel_event, 'delete')

        await self.backend.delete_item(role.key.to_key())

        return IdentityResult.success()

    @logged_operation('find-by-id')
    async def find_by_id(self, role_id: str, cancel_event: Cancel = None) -> Optional[TRole]:
        require(role_id, 'role_id')
        throw_if_cancelled(cancel_event, 'find_by_id')

        item = await self.backend.get_item(keys.role_key(role_id).to_key())
        return from_role_item(item, self.role_type) if item else None

    @logged_operation('find-by-name')
    async def find_by_name(self, normalized_role_name: str, cancel_event: Cancel = None) -> Optional[TRole]:
        require(normalized_role_name, 'normalized_role_name')
        throw_if_cancelled(cancel_event, 'find_by_name')

        items = await self.backend.query(
            'NormalizedName = :name',
            {':name': {'S': normalized_role_name}},
            index_name=NORMALIZED_NAME_INDEX,
            limit=1
        )
        return from_role_item(items[0], self.role_type) if items else None

    # Claims (in memory; persisted by update)

    async def add_claim(self, role: TRole, claim: Claim, cancel_event: Cancel = None) -> None:
        require_all(role=role, claim=claim)

        values = role.claims.setdefault(claim.type, [])
        if claim.value not in values:
            values.append(claim.value)

    async def remove_claim(self, role: TRole, claim: Claim, cancel_event: Cancel = None) -> None:
        """
        Remove one claim value. The type goes away with its last value;
        removing a value the role does not have changes nothing.
        """
        require_all(role=role, claim=claim)

        values = role.claims.get(claim.type)
        if values is None or claim.value not in values:
            return

        values.remove(claim.value)
        if not values:
            del role.claims[claim.type]

    async def get_claims(self, role: TRole, cancel_event: Cancel = None) -> List[Claim]:
        require(role, 'role')
        return [
            Claim(claim_type, value)
            for claim_type, values in role.claims.items()
            for value in values
        ]

    # Identity fields (in memory; persisted by update)

    async def get_role_id(self, role: TRole, cancel_event: Cancel = None) -> str:
        require(role, 'role')
        return role.id

    async def get_role_name(self, role: TRole, cancel_event: Cancel = None) -> Optional[str]:
        require(role, 'role')
        return role.name

    async def set_role_name(self, role: TRole, role_name: Optional[str], cancel_event: Cancel = None) -> None:
        require(role, 'role')
        role.name = role_name

    async def get_normalized_role_name(self, role: TRole, cancel_event: Cancel = None) -> Optional[str]:
        require(role, 'role')
        return role.normalized_name

    async def set_normalized_role_name(
        self, role: TRole, normalized_name: Optional[str], cancel_event: Cancel = None
    ) -> None:
        require(role, 'role')
        role.normalized_name = normalized_name
