"""
Account and Workgroup Services

Reference data for the dashboard: people (accounts) and the workgroups they
belong to. List calls go through the pagination driver so every page is
fetched and duplicates are merged by id.
"""

import logging
from typing import Any, Optional

from services.shiftboard.merge import dedupe_by_id
from services.shiftboard.pagination import PageFetcher, RpcClient, fetch_all

logger = logging.getLogger(__name__)


def _require_id(value: Optional[str], name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{name} is required")
    return value


def sort_accounts(accounts: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Alphabetical by last_name, then first_name (case-insensitive)."""
    return sorted(
        accounts,
        key=lambda a: ((a.get("last_name") or "").casefold(), (a.get("first_name") or "").casefold()),
    )


class AccountService:
    """Account (person) operations."""

    def __init__(self, client: RpcClient) -> None:
        self.fetcher = PageFetcher(client)

    async def list_accounts(self, workgroup: Optional[str] = None) -> dict[str, Any]:
        """
        All accounts, sorted by last_name, first_name.

        Args:
            workgroup: Optional workgroup id filter

        Returns:
            {"accounts": [...], "total": int, "partial": bool}
        """
        params: dict[str, Any] = {"extended": True}
        if workgroup:
            params["workgroup"] = workgroup

        logger.debug("Fetching account list", extra={"workgroup": workgroup})

        accumulated = await fetch_all(self.fetcher, "account.list", params)
        accounts = sort_accounts(dedupe_by_id(accumulated.items))

        logger.debug("Returning %d accounts", len(accounts))
        return {"accounts": accounts, "total": len(accounts), "partial": accumulated.partial}

    async def get_by_workgroup(self, workgroup_id: str) -> dict[str, Any]:
        """Accounts of one workgroup, sorted.

        Raises:
            ValueError: If workgroup_id is empty or whitespace
        """
        return await self.list_accounts(_require_id(workgroup_id, "workgroupId"))

    async def get_self(self) -> dict[str, Any]:
        """Service account identity (diagnostics)."""
        result = await self.fetcher.fetch_page("account.self", {"extended": True, "user_actions": True})
        return {"account": result.get("account", result)}

    async def get_by_id(self, account_id: str) -> dict[str, Any]:
        """Single account by id.

        Raises:
            ValueError: If account_id is empty or whitespace
        """
        _require_id(account_id, "accountId")
        result = await self.fetcher.fetch_page("account.get", {"id": account_id})
        return {"account": result.get("account", result)}


class WorkgroupService:
    """Workgroup operations."""

    def __init__(self, client: RpcClient) -> None:
        self.fetcher = PageFetcher(client)

    async def list_workgroups(self) -> dict[str, Any]:
        accumulated = await fetch_all(self.fetcher, "workgroup.list", {"extended": True})
        workgroups = dedupe_by_id(accumulated.items)
        return {"workgroups": workgroups, "total": len(workgroups), "partial": accumulated.partial}

    async def list_roles(self, workgroup_id: str) -> dict[str, Any]:
        """Roles defined for a workgroup.

        Raises:
            ValueError: If workgroup_id is empty or whitespace
        """
        _require_id(workgroup_id, "workgroupId")
        result = await self.fetcher.fetch_page("workgroup.listRoles", {"workgroup": workgroup_id})
        return {"roles": result.get("roles") or []}
