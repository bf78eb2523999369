from __future__ import annotations

import os
import urllib.request

import pytest

from src.adapters.aws import dynamodb_client


def _localstack_healthy(endpoint_url: str) -> bool:
    url = endpoint_url.rstrip("/") + "/_localstack/health"
    try:
        with urllib.request.urlopen(url, timeout=1.5) as resp:  # nosec B310
            return 200 <= resp.status < 300
    except OSError:
        return False


def _ensure_table(name: str, keys: list[tuple[str, str]]) -> str:
    """Create a string-keyed, on-demand table unless it already exists."""

    ddb = dynamodb_client()
    if name in ddb.list_tables().get("TableNames", []):
        return name
    ddb.create_table(
        TableName=name,
        BillingMode="PAY_PER_REQUEST",
        AttributeDefinitions=[
            {"AttributeName": attr, "AttributeType": "S"} for attr, _ in keys
        ],
        KeySchema=[
            {"AttributeName": attr, "KeyType": key_type} for attr, key_type in keys
        ],
    )
    ddb.get_waiter("table_exists").wait(TableName=name)
    return name


@pytest.fixture(scope="session", autouse=True)
def localstack_env() -> None:
    """Point boto3 at LocalStack unless the environment says otherwise."""

    os.environ.setdefault("USE_LOCALSTACK", "true")
    os.environ.setdefault("ENDPOINT_URL", "http://localhost:4566")
    os.environ.setdefault("AWS_REGION", "ap-south-1")

    # LocalStack ignores them, but botocore refuses to sign without any.
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")


@pytest.fixture(scope="session")
def require_localstack(localstack_env: None) -> str:
    endpoint_url = os.environ["ENDPOINT_URL"]
    if not _localstack_healthy(endpoint_url):
        msg = f"LocalStack not reachable at {endpoint_url}"

        # CI starts LocalStack itself, so a miss there is a real failure.
        if os.getenv("CI") or os.getenv("REQUIRE_LOCALSTACK"):
            pytest.fail(msg, pytrace=False)

        pytest.skip(f"{msg}; skipping DynamoDB integration tests")
    return endpoint_url


@pytest.fixture(scope="session")
def trips_table(require_localstack: str) -> str:
    return _ensure_table("bustrack-test-trips", [("trip_id", "HASH")])


@pytest.fixture(scope="session")
def locations_table(require_localstack: str) -> str:
    return _ensure_table(
        "bustrack-test-locations", [("trip_id", "HASH"), ("ts", "RANGE")]
    )


@pytest.fixture(scope="session")
def routes_table(require_localstack: str) -> str:
    return _ensure_table("bustrack-test-routes", [("route_id", "HASH")])


@pytest.fixture(scope="session")
def buses_table(require_localstack: str) -> str:
    return _ensure_table("bustrack-test-buses", [("registration_number", "HASH")])
