"""Relationship resolution between watched resources."""

from latticegw.resolve.mapper import ResourceMapper
from latticegw.resolve.parents import find_controlled_parents, is_controlled_by_gateway_controller
from latticegw.resolve.policies import (
    PolicyHandler,
    get_attached_policies,
    get_valid_policy,
    resolve_acceptance,
    sort_by_precedence,
)

__all__ = [
    "PolicyHandler",
    "ResourceMapper",
    "find_controlled_parents",
    "get_attached_policies",
    "get_valid_policy",
    "is_controlled_by_gateway_controller",
    "resolve_acceptance",
    "sort_by_precedence",
]
