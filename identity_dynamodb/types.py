"""
Shared type definitions for the DynamoDB identity stores.

This module defines TypedDict classes for the stored item layouts (the plain
Python form of each row, before DynamoDB attribute-value encoding) and for
the configuration shapes passed to boto3.
"""

from typing import TypedDict, Literal, List, Dict, Optional

# Billing mode literal type
BillingMode = Literal['PAY_PER_REQUEST', 'PROVISIONED']


class ProvisionedThroughput(TypedDict):
    """Read/write capacity forwarded to the table and every index."""
    ReadCapacityUnits: int
    WriteCapacityUnits: int


class UserItem(TypedDict, total=False):
    """Stored user row."""
    PartitionKey: str
    SortKey: str
    Id: str
    UserName: Optional[str]
    NormalizedUserName: Optional[str]
    Email: Optional[str]
    NormalizedEmail: Optional[str]
    EmailConfirmed: bool
    PasswordHash: Optional[str]
    SecurityStamp: Optional[str]
    ConcurrencyStamp: Optional[str]
    PhoneNumber: Optional[str]
    PhoneNumberConfirmed: bool
    TwoFactorEnabled: bool
    LockoutEnd: Optional[str]
    LockoutEnabled: bool
    AccessFailedCount: int


class RoleItem(TypedDict, total=False):
    """Stored role row. Role claims are embedded, not separate rows."""
    PartitionKey: str
    SortKey: str
    Id: str
    Name: Optional[str]
    NormalizedName: Optional[str]
    ConcurrencyStamp: Optional[str]
    Claims: Dict[str, List[str]]


class UserClaimItem(TypedDict, total=False):
    """Stored user claim row."""
    PartitionKey: str
    SortKey: str
    UserId: str
    ClaimType: str
    ClaimValue: str


class UserLoginItem(TypedDict, total=False):
    """Stored external login row."""
    PartitionKey: str
    SortKey: str
    UserId: str
    LoginProvider: str
    ProviderKey: str
    ProviderDisplayName: Optional[str]


class UserRoleItem(TypedDict, total=False):
    """Stored role membership row."""
    PartitionKey: str
    SortKey: str
    UserId: str
    RoleName: str


class UserTokenItem(TypedDict, total=False):
    """Stored authentication token row."""
    PartitionKey: str
    SortKey: str
    UserId: str
    LoginProvider: str
    Name: str
    Value: Optional[str]
