"""DynamoDB single-table user and role stores for an identity framework."""

from .aliases import TableAliasRegistry

from .config import (
    DynamoDbOptions,
    OptionsMonitor,
    load_options_from_env
)

from .errors import (
    DomainError,
    ArgumentNullError,
    NotSupportedError,
    TableProvisioningError,
    OperationCancelledError,
    ConfigurationError
)

from .models import (
    Claim,
    UserLoginInfo,
    IdentityError,
    IdentityResult,
    DynamoDbUser,
    DynamoDbRole,
    DynamoDbUserClaim,
    DynamoDbUserLogin,
    DynamoDbUserRole,
    DynamoDbUserToken
)

from .stores import (
    DynamoDbUserStore,
    DynamoDbRoleStore,
    UserStoreBase,
    RoleStoreBase
)

from .table_setup import (
    DynamoDbTableSetup,
    ensure_initialized,
    ensure_initialized_async
)

__all__ = [
    # Configuration
    'DynamoDbOptions',
    'OptionsMonitor',
    'TableAliasRegistry',
    'load_options_from_env',
    # Errors
    'DomainError',
    'ArgumentNullError',
    'NotSupportedError',
    'TableProvisioningError',
    'OperationCancelledError',
    'ConfigurationError',
    # Entities
    'Claim',
    'UserLoginInfo',
    'IdentityError',
    'IdentityResult',
    'DynamoDbUser',
    'DynamoDbRole',
    'DynamoDbUserClaim',
    'DynamoDbUserLogin',
    'DynamoDbUserRole',
    'DynamoDbUserToken',
    # Stores
    'DynamoDbUserStore',
    'DynamoDbRoleStore',
    'UserStoreBase',
    'RoleStoreBase',
    # Table setup
    'DynamoDbTableSetup',
    'ensure_initialized',
    'ensure_initialized_async',
]
