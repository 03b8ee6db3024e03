import typing as t
from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture
def paystack_client() -> t.Iterator[MagicMock]:
    """A stand-in for the Paystack API, handed out by ``payments.paystack.get_client``."""
    client = MagicMock()
    with patch("payments.paystack.get_client") as mock_get_client:
        mock_get_client.return_value.__enter__.return_value = client
        yield client
