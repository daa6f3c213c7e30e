"""
Expense Tracker API client.

DESIGN DECISION: The base URL and timeout come from an explicit
ClientConfig passed at construction. There is no module-level default
the rest of the program could change behind the client's back.

Failures are split in two:
- NetworkError: the server could not be reached or did not answer in time
- ApiError:     the server answered and rejected the request
"""

from typing import Any, Optional

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from expense_tracker.client.access import ClientError, Identity, ensure_access


logger = structlog.get_logger(__name__)


class NetworkError(ClientError):
    """The server is unreachable or timed out."""
    pass


class ApiError(ClientError):
    """The server rejected the request."""

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: Optional[dict] = None,
        error: Optional[str] = None,
    ):
        self.status_code = status_code
        self.message = message
        self.errors = errors or {}
        self.error = error
        super().__init__(f"{status_code}: {message}")


class ClientConfig(BaseModel):
    """Connection options; accepts ``baseUrl``/``timeoutMs`` as well."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    base_url: str = Field(..., min_length=1, description="API root, e.g. http://localhost:3000")
    timeout_ms: int = Field(default=10000, gt=0, description="Per-request timeout")


class ExpenseTrackerClient:
    """
    Synchronous client for every endpoint family.

    Usage:
        with ExpenseTrackerClient(ClientConfig(base_url="http://localhost:3000")) as api:
            api.login("a@b.com", "secret1")
            expenses = api.list_user_expenses(api.identity.id)
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config = config
        self.identity: Optional[Identity] = None
        self._http = httpx.Client(
            base_url=config.base_url.rstrip("/"),
            timeout=config.timeout_ms / 1000,
            transport=transport,
        )

    def __enter__(self) -> "ExpenseTrackerClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _request(self, method: str, path: str, **kwargs) -> dict:
        """Send a request and return the decoded JSON body."""
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("api_timeout", method=method, path=path)
            raise NetworkError(f"Request to {path} timed out") from e
        except httpx.TransportError as e:
            logger.warning("api_unreachable", method=method, path=path, error=str(e))
            raise NetworkError(f"Server unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        if response.is_error:
            raise ApiError(
                response.status_code,
                body.get("message") or response.reason_phrase,
                errors=body.get("errors"),
                error=body.get("error"),
            )
        return body

    def _data(self, method: str, path: str, **kwargs) -> Any:
        return self._request(method, path, **kwargs).get("data")

    # =========================================================================
    # SESSION
    # =========================================================================

    @property
    def is_logged_in(self) -> bool:
        return self.identity is not None

    def login(self, email: str, password: str) -> Identity:
        data = self._data("POST", "/user/login", json={"email": email, "password": password})
        self.identity = Identity.from_login(data)
        return self.identity

    def logout(self) -> None:
        self.identity = None

    def signup(self, user: dict) -> dict:
        return self._data("POST", "/user", json=user)

    def forgot_password(self, email: str) -> dict:
        return self._data("POST", "/user/forgotpassword", json={"email": email})

    def reset_password(self, token: str, password: str) -> None:
        self._request("POST", "/user/resetpassword", json={"token": token, "password": password})

    def health(self) -> dict:
        return self._request("GET", "/health")

    # =========================================================================
    # USERS
    # =========================================================================

    def list_users(self) -> list[dict]:
        return self._data("GET", "/users")

    def get_user(self, user_id: str) -> dict:
        return self._data("GET", f"/user/{user_id}")

    def add_user(self, user: dict) -> dict:
        return self._data("POST", "/adduser", json=user)

    def update_user(self, user_id: str, changes: dict) -> dict:
        return self._data("PUT", f"/user/{user_id}", json=changes)

    def delete_user(self, user_id: str) -> dict:
        return self._data("DELETE", f"/user/{user_id}")

    # =========================================================================
    # CATALOG
    # =========================================================================

    def list_roles(self) -> list[dict]:
        return self._data("GET", "/roles")

    def list_categories(self) -> list[dict]:
        return self._data("GET", "/category")

    def create_category(self, category: dict) -> dict:
        return self._data("POST", "/category", json=category)

    def list_subcategories(self, category_id: Optional[str] = None) -> list[dict]:
        params = {"categoryId": category_id} if category_id else None
        return self._data("GET", "/subcategory", params=params)

    def create_subcategory(self, subcategory: dict) -> dict:
        return self._data("POST", "/subcategory", json=subcategory)

    def list_vendors(self, user_id: Optional[str] = None) -> list[dict]:
        params = {"userId": user_id} if user_id else None
        return self._data("GET", "/vendor", params=params)

    def create_vendor(self, vendor: dict) -> dict:
        return self._data("POST", "/vendor", json=vendor)

    def list_accounts(self, user_id: Optional[str] = None) -> list[dict]:
        params = {"userId": user_id} if user_id else None
        return self._data("GET", "/account", params=params)

    def create_account(self, account: dict) -> dict:
        return self._data("POST", "/account", json=account)

    # =========================================================================
    # EXPENSES
    # =========================================================================

    def list_expenses(self) -> list[dict]:
        return self._data("GET", "/expense/expence")

    def list_user_expenses(self, user_id: str) -> list[dict]:
        return self._data("GET", f"/expense/getExpencebyuserid/{user_id}")

    def get_expense(self, expense_id: str) -> dict:
        """Fetch one expense; only its owner or an admin may see it."""
        expense = self._data("GET", f"/expense/getExpenceById/{expense_id}")
        return ensure_access(self.identity, expense)

    def create_expense(self, expense: dict) -> dict:
        return self._data("POST", "/expense/addexpence", json=expense)

    def create_expense_with_receipt(
        self,
        expense: dict,
        image_bytes: bytes,
        filename: str = "receipt.png",
        content_type: str = "application/octet-stream",
    ) -> dict:
        fields = {key: str(value) for key, value in expense.items() if value is not None}
        return self._data(
            "POST",
            "/expense/addWithFile",
            data=fields,
            files={"image": (filename, image_bytes, content_type)},
        )

    def update_expense(self, expense_id: str, changes: dict) -> dict:
        return self._data("PUT", f"/expense/updateExpence/{expense_id}", json=changes)

    def update_expense_status(self, expense_id: str, status: str) -> dict:
        return self._data(
            "PUT", f"/expense/updateExpenceStatus/{expense_id}", json={"status": status}
        )

    def add_comment(self, expense_id: str, text: str, user: Optional[str] = None) -> dict:
        payload = {"text": text}
        if user:
            payload["user"] = user
        return self._data("POST", f"/expense/addComment/{expense_id}", json=payload)

    def delete_expense(self, expense_id: str) -> dict:
        return self._data("DELETE", f"/expense/expence/{expense_id}")

    # =========================================================================
    # INCOMES
    # =========================================================================

    def list_incomes(self, user_id: Optional[str] = None) -> list[dict]:
        params = {"userId": user_id} if user_id else None
        return self._data("GET", "/income", params=params)

    def list_all_incomes(self) -> list[dict]:
        return self._data("GET", "/income/all")

    def get_income(self, income_id: str) -> dict:
        """Fetch one income; only its owner or an admin may see it."""
        income = self._data("GET", f"/income/{income_id}")
        return ensure_access(self.identity, income)

    def create_income(self, income: dict) -> dict:
        return self._data("POST", "/income", json=income)

    def update_income(self, income_id: str, changes: dict) -> dict:
        return self._data("PUT", f"/income/{income_id}", json=changes)

    def delete_income(self, income_id: str) -> dict:
        return self._data("DELETE", f"/income/{income_id}")

    def total_income(self, user_id: str) -> float:
        data = self._data("GET", "/income/total", params={"userId": user_id})
        return float(data["totalIncome"])
