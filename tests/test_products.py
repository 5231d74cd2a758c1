import time

import pytest
from httpx import ASGITransport, AsyncClient

from catalog_api.app.core.exceptions import GENERIC_FAILURE
from catalog_api.app.core.security import create_access_token
from catalog_api.app.main import create_app
from tests.conftest import TEST_SECRET, auth_header

pytestmark = pytest.mark.anyio

PRODUCT_ROUTES = [
    ("post", "/add-product"),
    ("get", "/products"),
    ("get", "/product/0123456789abcdef01234567"),
    ("put", "/product/0123456789abcdef01234567"),
    ("delete", "/product/0123456789abcdef01234567"),
    ("get", "/search/lap"),
]


async def _call(client, method, path, **kwargs):
    if method in ("post", "put"):
        kwargs.setdefault("json", {"name": "x"})
    return await getattr(client, method)(path, **kwargs)


async def add_product(client, token, **fields):
    response = await client.post("/add-product", json=fields, headers=auth_header(token))
    assert response.status_code == 200
    return response.json()


# ═══════════════════════════════════════════════════════
# AUTH GATEWAY
# ═══════════════════════════════════════════════════════

@pytest.mark.parametrize("method,path", PRODUCT_ROUTES)
async def test_missing_authorization_header_is_forbidden(client, method, path):
    response = await _call(client, method, path)
    assert response.status_code == 403
    assert response.json() == {"result": "Token not found, please add token with header!"}


@pytest.mark.parametrize("method,path", PRODUCT_ROUTES)
async def test_malformed_token_is_unauthorized(client, method, path):
    response = await _call(client, method, path, headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json() == {"result": "Please provide valid token!"}


async def test_header_without_token_part_is_unauthorized(client):
    response = await client.get("/products", headers={"Authorization": "Bearer"})
    assert response.status_code == 401


async def test_expired_token_is_unauthorized(client, alice):
    user, _ = alice
    issued = int(time.time()) - 3 * 60 * 60
    token = create_access_token({"sub": user["_id"], "user": user}, TEST_SECRET, now=issued)
    response = await client.get("/products", headers=auth_header(token))
    assert response.status_code == 401


async def test_token_without_identity_is_unauthorized(client):
    token = create_access_token({"user": {"name": "nobody"}}, TEST_SECRET)
    response = await client.get("/products", headers=auth_header(token))
    assert response.status_code == 401


async def test_token_signed_with_other_secret_is_unauthorized(client, alice):
    user, _ = alice
    token = create_access_token({"sub": user["_id"], "user": user}, "someone-elses-secret")
    response = await client.get("/products", headers=auth_header(token))
    assert response.status_code == 401


# ═══════════════════════════════════════════════════════
# PRODUCT CRUD
# ═══════════════════════════════════════════════════════

async def test_add_product_persists_arbitrary_fields(client, alice):
    user, token = alice
    product = await add_product(
        client, token, name="Laptop", company="Laptop Co", price=999, tags=["a", "b"]
    )
    assert product["ownerID"] == user["_id"]
    assert product["tags"] == ["a", "b"]
    assert len(product["_id"]) == 24

    fetched = await client.get(f"/product/{product['_id']}", headers=auth_header(token))
    assert fetched.json() == product


async def test_client_cannot_choose_owner_or_id(client, alice, bob):
    alice_user, alice_token = alice
    bob_user, bob_token = bob
    product = await add_product(
        client, alice_token, name="Phone", ownerID=bob_user["_id"], _id="f" * 24
    )
    assert product["ownerID"] == alice_user["_id"]
    assert product["_id"] != "f" * 24

    bob_list = await client.get("/products", headers=auth_header(bob_token))
    assert bob_list.json() == {"result": "No Products Found."}


async def test_list_products_sentinel_when_empty(client, alice):
    _, token = alice
    response = await client.get("/products", headers=auth_header(token))
    assert response.status_code == 200
    assert response.json() == {"result": "No Products Found."}


async def test_list_products_only_returns_own(client, alice, bob):
    _, alice_token = alice
    _, bob_token = bob
    first = await add_product(client, alice_token, name="One")
    second = await add_product(client, alice_token, name="Two")
    await add_product(client, bob_token, name="Bob's")

    response = await client.get("/products", headers=auth_header(alice_token))
    assert response.status_code == 200
    assert response.json() == [first, second]


async def test_get_unknown_product_returns_sentinel(client, alice):
    _, token = alice
    response = await client.get("/product/doesnotexist", headers=auth_header(token))
    assert response.status_code == 200
    assert response.json() == {"result": "No Record Found."}


async def test_update_merges_fields(client, alice):
    _, token = alice
    product = await add_product(client, token, name="Laptop", price=10, company="Acme")

    response = await client.put(
        f"/product/{product['_id']}", json={"price": 12, "color": "grey"}, headers=auth_header(token)
    )
    assert response.status_code == 200
    assert response.json() == {"acknowledged": True, "matchedCount": 1, "modifiedCount": 1}

    fetched = (await client.get(f"/product/{product['_id']}", headers=auth_header(token))).json()
    assert fetched["price"] == 12
    assert fetched["color"] == "grey"
    assert fetched["name"] == "Laptop"
    assert fetched["company"] == "Acme"


async def test_update_with_identical_values_modifies_nothing(client, alice):
    _, token = alice
    product = await add_product(client, token, name="Laptop")
    response = await client.put(
        f"/product/{product['_id']}", json={"name": "Laptop"}, headers=auth_header(token)
    )
    assert response.json() == {"acknowledged": True, "matchedCount": 1, "modifiedCount": 0}


async def test_update_changing_only_the_value_type_is_a_modification(client, alice):
    _, token = alice
    product = await add_product(client, token, name="Laptop", inStock=1)
    response = await client.put(
        f"/product/{product['_id']}", json={"inStock": True}, headers=auth_header(token)
    )
    assert response.json() == {"acknowledged": True, "matchedCount": 1, "modifiedCount": 1}

    fetched = (await client.get(f"/product/{product['_id']}", headers=auth_header(token))).json()
    assert fetched["inStock"] is True


async def test_update_cannot_reassign_owner(client, alice, bob):
    alice_user, alice_token = alice
    bob_user, _ = bob
    product = await add_product(client, alice_token, name="Laptop")
    await client.put(
        f"/product/{product['_id']}",
        json={"ownerID": bob_user["_id"], "name": "Renamed"},
        headers=auth_header(alice_token),
    )
    fetched = (await client.get(f"/product/{product['_id']}", headers=auth_header(alice_token))).json()
    assert fetched["ownerID"] == alice_user["_id"]
    assert fetched["name"] == "Renamed"


async def test_delete_own_product(client, alice):
    _, token = alice
    product = await add_product(client, token, name="Laptop")
    response = await client.delete(f"/product/{product['_id']}", headers=auth_header(token))
    assert response.status_code == 200
    assert response.json() == {"acknowledged": True, "deletedCount": 1}

    again = await client.delete(f"/product/{product['_id']}", headers=auth_header(token))
    assert again.json()["deletedCount"] == 0
    fetched = await client.get(f"/product/{product['_id']}", headers=auth_header(token))
    assert fetched.json() == {"result": "No Record Found."}


# ═══════════════════════════════════════════════════════
# OWNERSHIP ISOLATION
# ═══════════════════════════════════════════════════════

async def test_other_users_product_is_invisible_and_untouchable(client, alice, bob):
    _, alice_token = alice
    _, bob_token = bob
    product = await add_product(client, bob_token, name="Secret", company="Bob Co")
    path = f"/product/{product['_id']}"

    got = await client.get(path, headers=auth_header(alice_token))
    assert got.status_code == 200
    assert got.json() == {"result": "No Record Found."}

    updated = await client.put(path, json={"name": "Pwned"}, headers=auth_header(alice_token))
    assert updated.status_code == 200
    assert updated.json() == {"acknowledged": True, "matchedCount": 0, "modifiedCount": 0}

    deleted = await client.delete(path, headers=auth_header(alice_token))
    assert deleted.status_code == 200
    assert deleted.json() == {"acknowledged": True, "deletedCount": 0}

    searched = await client.get("/search/secret", headers=auth_header(alice_token))
    assert searched.json() == []

    # Bob's product is unchanged.
    still_there = await client.get(path, headers=auth_header(bob_token))
    assert still_there.json() == product


# ═══════════════════════════════════════════════════════
# SEARCH
# ═══════════════════════════════════════════════════════

async def test_search_is_case_insensitive_substring(client, alice):
    _, token = alice
    laptop = await add_product(client, token, name="Notebook", company="Laptop Co")
    await add_product(client, token, name="Tower", company="Desktop Co")

    response = await client.get("/search/lap", headers=auth_header(token))
    assert response.status_code == 200
    assert response.json() == [laptop]


async def test_search_matches_name_company_or_category(client, alice):
    _, token = alice
    by_name = await add_product(client, token, name="Gaming mouse")
    by_company = await add_product(client, token, name="Pad", company="GAMING inc")
    by_category = await add_product(client, token, name="Chair", category="gaming")
    await add_product(client, token, name="Desk", description="gaming desk")

    response = await client.get("/search/Gaming", headers=auth_header(token))
    assert response.json() == [by_name, by_company, by_category]


async def test_search_without_match_returns_empty_list(client, alice):
    _, token = alice
    await add_product(client, token, name="Laptop")
    response = await client.get("/search/zzz", headers=auth_header(token))
    assert response.status_code == 200
    assert response.json() == []


async def test_search_key_that_is_not_a_regex_matches_literally(client, alice):
    _, token = alice
    product = await add_product(client, token, name="C++ (book")
    response = await client.get("/search/(book", headers=auth_header(token))
    assert response.json() == [product]


async def test_search_supports_patterns(client, alice):
    _, token = alice
    product = await add_product(client, token, name="Laptop 15")
    await add_product(client, token, name="Tablet")
    response = await client.get("/search/^lap", headers=auth_header(token))
    assert response.json() == [product]


# ═══════════════════════════════════════════════════════
# NON-FINITE NUMBERS
# ═══════════════════════════════════════════════════════

async def test_add_product_with_nan_is_rejected_and_search_keeps_working(client, alice):
    _, token = alice
    headers = {**auth_header(token), "Content-Type": "application/json"}
    response = await client.post(
        "/add-product", content='{"name": "bad", "price": NaN}', headers=headers
    )
    assert response.status_code == 400
    assert response.json() == {"result": "Product fields must be valid JSON values"}

    product = await add_product(client, token, name="ok")
    search = await client.get("/search/ok", headers=auth_header(token))
    assert search.status_code == 200
    assert search.json() == [product]


async def test_update_with_infinity_is_rejected(client, alice):
    _, token = alice
    product = await add_product(client, token, name="Laptop", price=10)
    headers = {**auth_header(token), "Content-Type": "application/json"}
    response = await client.put(
        f"/product/{product['_id']}", content='{"price": Infinity}', headers=headers
    )
    assert response.status_code == 400

    fetched = (await client.get(f"/product/{product['_id']}", headers=auth_header(token))).json()
    assert fetched["price"] == 10


# ═══════════════════════════════════════════════════════
# STORE FAILURES
# ═══════════════════════════════════════════════════════

@pytest.mark.parametrize("method,path", PRODUCT_ROUTES)
async def test_store_failure_is_internal_error(broken_client, method, path):
    token = create_access_token({"sub": "0" * 24, "user": {}}, TEST_SECRET)
    response = await _call(broken_client, method, path, headers=auth_header(token))
    assert response.status_code == 500
    assert response.json() == {"result": GENERIC_FAILURE}


# ═══════════════════════════════════════════════════════
# PERSISTENCE
# ═══════════════════════════════════════════════════════

async def test_products_survive_application_restart(client, settings, alice):
    _, token = alice
    product = await add_product(client, token, name="Durable")

    restarted = create_app(settings)
    restarted.state.db.init_db()
    async with AsyncClient(transport=ASGITransport(app=restarted), base_url="http://test") as other:
        response = await other.get("/products", headers=auth_header(token))
    assert response.json() == [product]
