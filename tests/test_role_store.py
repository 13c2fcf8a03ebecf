"""
Tests for the DynamoDB role store against an in-process DynamoDB.
"""

from unittest.mock import MagicMock

import pytest

from identity_dynamodb import (
    ArgumentNullError,
    Claim,
    DynamoDbRole,
    DynamoDbRoleStore,
)


class TestRoleCrud:
    """Test create, find, update and delete of role rows."""

    async def test_create_then_find_by_name(self, role_store):
        role = DynamoDbRole(name='Admin', normalized_name='ADMIN')

        result = await role_store.create(role)
        found = await role_store.find_by_name('ADMIN')

        assert result.succeeded
        assert found == role
        assert await role_store.find_by_id(role.id) == role

    async def test_unknown_role_is_none(self, role_store):
        assert await role_store.find_by_name('NOBODY') is None
        assert await role_store.find_by_id('missing') is None

    async def test_delete(self, role_store):
        role = DynamoDbRole(name='Admin', normalized_name='ADMIN')
        await role_store.create(role)

        result = await role_store.delete(role)

        assert result.succeeded
        assert await role_store.find_by_id(role.id) is None

    async def test_update_persists_claims(self, role_store):
        role = DynamoDbRole(name='Admin', normalized_name='ADMIN')
        await role_store.create(role)

        await role_store.add_claim(role, Claim('perm', 'read'))
        await role_store.add_claim(role, Claim('perm', 'write'))
        result = await role_store.update(role)

        assert result.succeeded
        stored = await role_store.find_by_id(role.id)
        assert await role_store.get_claims(stored) == [Claim('perm', 'read'), Claim('perm', 'write')]

    async def test_concurrent_updates_only_first_wins(self, role_store):
        """Two copies loaded at the same stamp: the second update is rejected."""
        role = DynamoDbRole(name='Admin', normalized_name='ADMIN')
        await role_store.create(role)
        first = await role_store.find_by_id(role.id)
        second = await role_store.find_by_id(role.id)
        original_stamp = second.concurrency_stamp

        await role_store.set_role_name(first, 'Administrators')
        await role_store.set_role_name(second, 'Owners')
        first_result = await role_store.update(first)
        second_result = await role_store.update(second)

        assert first_result.succeeded
        assert not second_result.succeeded
        assert second_result.errors[0].code == 'ConcurrencyFailure'
        assert second.concurrency_stamp == original_stamp
        stored = await role_store.find_by_id(role.id)
        assert stored.name == 'Administrators'
        assert stored.concurrency_stamp == first.concurrency_stamp


class TestRoleClaims:
    """Test the claim set embedded in a role."""

    async def test_adding_a_claim_twice_keeps_one_value(self, role_store):
        role = DynamoDbRole()

        await role_store.add_claim(role, Claim('perm', 'read'))
        await role_store.add_claim(role, Claim('perm', 'read'))

        assert role.claims == {'perm': ['read']}

    async def test_removing_last_value_drops_type(self, role_store):
        role = DynamoDbRole(claims={'perm': ['read', 'write']})

        await role_store.remove_claim(role, Claim('perm', 'read'))
        assert role.claims == {'perm': ['write']}

        await role_store.remove_claim(role, Claim('perm', 'write'))
        assert role.claims == {}

    async def test_removing_missing_value_is_a_no_op(self, role_store):
        role = DynamoDbRole(claims={'perm': ['read']})

        await role_store.remove_claim(role, Claim('perm', 'delete'))
        await role_store.remove_claim(role, Claim('other', 'x'))

        assert role.claims == {'perm': ['read']}

    async def test_get_claims_flattens_types(self, role_store):
        role = DynamoDbRole(claims={'perm': ['read'], 'scope': ['api', 'web']})

        claims = await role_store.get_claims(role)

        assert sorted(claims) == [
            Claim('perm', 'read'),
            Claim('scope', 'api'),
            Claim('scope', 'web'),
        ]


class TestRoleFields:
    """Test in-memory role name accessors."""

    async def test_name_accessors(self, role_store):
        role = DynamoDbRole()

        await role_store.set_role_name(role, 'Editor')
        await role_store.set_normalized_role_name(role, 'EDITOR')

        assert await role_store.get_role_id(role) == role.id
        assert await role_store.get_role_name(role) == 'Editor'
        assert await role_store.get_normalized_role_name(role) == 'EDITOR'

    async def test_invalid_arguments_fail_before_io(self, initialized):
        client = MagicMock()
        store = DynamoDbRoleStore(initialized, client)

        with pytest.raises(ArgumentNullError) as exc_info:
            await store.find_by_name('')
        assert exc_info.value.param_name == 'normalized_role_name'

        with pytest.raises(ArgumentNullError) as exc_info:
            await store.add_claim(DynamoDbRole(), None)
        assert exc_info.value.param_name == 'claim'

        assert client.method_calls == []


class TestFindByNameScenario:
    """Test lookup of a role by its normalized name."""

    async def test_admin_role_is_found_by_normalized_name(self, role_store):
        role = DynamoDbRole(name='admin', normalized_name='admin'.upper())
        await role_store.create(role)

        found = await role_store.find_by_name('ADMIN')

        assert found.id == role.id
