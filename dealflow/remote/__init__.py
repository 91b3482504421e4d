"""Remote collaborators: contracts, in-memory doubles and HTTP clients."""

from dealflow.remote.fake import InMemoryRelationshipService, InMemorySubscriptionStore
from dealflow.remote.http import HttpRelationshipService, HttpSubscriptionStore
from dealflow.remote.protocol import RelationshipService, SubscriptionStore

__all__ = [
    "HttpRelationshipService",
    "HttpSubscriptionStore",
    "InMemoryRelationshipService",
    "InMemorySubscriptionStore",
    "RelationshipService",
    "SubscriptionStore",
]
