"""Public API resource accessors.

Each method is a thin pass-through to
:meth:`~bwgate.gateway.Gateway.execute`. List endpoints unwrap the
``{"data": [...]}`` envelope; single-object endpoints return the decoded
body as-is.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import urlencode

from bwgate.client.response import parse_list
from bwgate.models import HTTPMethod, ListResponse

if TYPE_CHECKING:
    from bwgate.gateway import Gateway


class PublicApi:
    """Organization management endpoints of the Bitwarden Public API."""

    def __init__(self, gateway: Gateway) -> None:
        self._gateway = gateway

    def _list(self, endpoint: str, filter_query: Optional[str] = None) -> list[dict[str, Any]]:
        body = self._gateway.execute(endpoint, filter_query=filter_query)
        return parse_list(body).data

    # --- Members ---

    def list_members(self) -> list[dict[str, Any]]:
        return self._list("public/members")

    def get_member(self, member_id: str) -> Any:
        return self._gateway.execute(f"public/members/{member_id}")

    def invite_member(self, member: dict[str, Any]) -> Any:
        """Invite a new member. *member* is the API's member request body."""
        return self._gateway.execute("public/members", HTTPMethod.POST, body=member)

    def reinvite_member(self, member_id: str) -> Any:
        return self._gateway.execute(
            f"public/members/{member_id}/reinvite", HTTPMethod.POST
        )

    def remove_member(self, member_id: str) -> Any:
        return self._gateway.execute(f"public/members/{member_id}", HTTPMethod.DELETE)

    def get_member_group_ids(self, member_id: str) -> Any:
        return self._gateway.execute(f"public/members/{member_id}/group-ids")

    # --- Groups ---

    def list_groups(self) -> list[dict[str, Any]]:
        return self._list("public/groups")

    def get_group(self, group_id: str) -> Any:
        return self._gateway.execute(f"public/groups/{group_id}")

    def create_group(self, group: dict[str, Any]) -> Any:
        return self._gateway.execute("public/groups", HTTPMethod.POST, body=group)

    def delete_group(self, group_id: str) -> Any:
        return self._gateway.execute(f"public/groups/{group_id}", HTTPMethod.DELETE)

    def get_group_member_ids(self, group_id: str) -> Any:
        return self._gateway.execute(f"public/groups/{group_id}/member-ids")

    # --- Collections ---

    def list_collections(self) -> list[dict[str, Any]]:
        return self._list("public/collections")

    def get_collection(self, collection_id: str) -> Any:
        return self._gateway.execute(f"public/collections/{collection_id}")

    def delete_collection(self, collection_id: str) -> Any:
        return self._gateway.execute(
            f"public/collections/{collection_id}", HTTPMethod.DELETE
        )

    # --- Policies ---

    def list_policies(self) -> list[dict[str, Any]]:
        return self._list("public/policies")

    def get_policy(self, policy_type: int) -> Any:
        return self._gateway.execute(f"public/policies/{policy_type}")

    # --- Events ---

    def list_events(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        acting_user_id: Optional[str] = None,
        item_id: Optional[str] = None,
        continuation_token: Optional[str] = None,
    ) -> ListResponse:
        """Fetch one page of the organization event log.

        Returns the whole :class:`~bwgate.models.ListResponse` so that the
        caller can follow ``continuation_token`` to the next page.
        """
        params: dict[str, str] = {}
        if start is not None:
            params["start"] = start.isoformat()
        if end is not None:
            params["end"] = end.isoformat()
        if acting_user_id:
            params["actingUserId"] = acting_user_id
        if item_id:
            params["itemId"] = item_id
        if continuation_token:
            params["continuationToken"] = continuation_token
        body = self._gateway.execute(
            "public/events", filter_query=urlencode(params) or None
        )
        return parse_list(body)

    # --- Organization ---

    def get_organization_subscription(self) -> Any:
        return self._gateway.execute("public/organization/subscription")
