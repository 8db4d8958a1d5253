"""Per-kind event handlers turning watch events into reconcile requests."""

from latticegw.handlers.base import EventHandler, MapFuncHandler, ObjectEventHandler, RequestSink
from latticegw.handlers.endpoints import EndpointsEventHandler
from latticegw.handlers.gateway import GatewayEventHandler, vpc_association_policy_to_gateway
from latticegw.handlers.gatewayclass import GatewayClassEventHandler
from latticegw.handlers.policy import PolicyEventHandler, route_to_access_log_policy, route_to_iam_auth_policy
from latticegw.handlers.route import RouteEventHandler
from latticegw.handlers.service import ServiceEventHandler
from latticegw.handlers.serviceexport import ServiceExportEventHandler
from latticegw.handlers.serviceimport import ServiceImportEventHandler
from latticegw.handlers.targetgrouppolicy import TargetGroupPolicyEventHandler

__all__ = [
    "EndpointsEventHandler",
    "EventHandler",
    "GatewayClassEventHandler",
    "GatewayEventHandler",
    "MapFuncHandler",
    "ObjectEventHandler",
    "PolicyEventHandler",
    "RequestSink",
    "RouteEventHandler",
    "ServiceEventHandler",
    "ServiceExportEventHandler",
    "ServiceImportEventHandler",
    "TargetGroupPolicyEventHandler",
    "route_to_access_log_policy",
    "route_to_iam_auth_policy",
    "vpc_association_policy_to_gateway",
]
