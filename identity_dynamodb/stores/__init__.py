"""Identity stores backed by the single DynamoDB table."""

from .base import RoleStoreBase, UserStoreBase
from .role_store import DynamoDbRoleStore
from .user_store import DynamoDbUserStore

__all__ = [
    'DynamoDbRoleStore',
    'DynamoDbUserStore',
    'RoleStoreBase',
    'UserStoreBase',
]
