import base64
import uuid

import pytest
from fastapi import HTTPException

from foodcourt.auth.dependencies import (
    ADMIN_ROLE,
    MERCHANT_ROLE,
    AuthContext,
    ensure_merchant_access,
    parse_basic_credentials,
    require_roles,
)


def _basic(value: str) -> str:
    return "Basic " + base64.b64encode(value.encode()).decode()


def test_parse_basic_credentials():
    assert parse_basic_credentials(_basic("admin:pa:ss")) == ("admin", "pa:ss")


@pytest.mark.parametrize(
    "header", [None, "", "Bearer abc", "Basic !!!", _basic("no-separator")]
)
def test_parse_basic_credentials_rejects_malformed_headers(header):
    assert parse_basic_credentials(header) is None


def test_admin_may_access_any_merchant():
    auth = AuthContext(user_id=str(uuid.uuid4()), role=ADMIN_ROLE, source="cookie")

    ensure_merchant_access(auth, uuid.uuid4())


def test_merchant_may_only_access_itself():
    merchant_id = uuid.uuid4()
    auth = AuthContext(user_id=str(merchant_id), role=MERCHANT_ROLE, source="cookie")

    ensure_merchant_access(auth, merchant_id)
    with pytest.raises(HTTPException) as exc_info:
        ensure_merchant_access(auth, uuid.uuid4())
    assert exc_info.value.status_code == 403


def test_require_roles_rejects_other_roles():
    dependency = require_roles(ADMIN_ROLE)
    auth = AuthContext(user_id="m-1", role=MERCHANT_ROLE, source="cookie")

    with pytest.raises(HTTPException) as exc_info:
        dependency(auth)
    assert exc_info.value.status_code == 403
    assert exc_info.value.detail == "Insufficient role"
