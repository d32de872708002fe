"""
Transfer Authorization Signing Tests

Covers input validation ordering (nothing is read or signed for bad input),
fee folding, the validity window, nonce freshness and that the produced
signature recovers to the signing account.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data

from vaultpay.adapters.bases import TypedDataSigner
from vaultpay.adapters.evm.constants import ProtocolSettings
from vaultpay.adapters.evm.signers import LocalAccountSigner, build_transfer_typed_data
from vaultpay.engine.exceptions import (
    InsufficientBalance,
    InvalidAddress,
    InvalidInput,
    NotReady,
    SigningFailed,
    TransactionFailed,
    UserRejected,
)
from vaultpay.flows.authorization import AuthorizationSigner, generate_nonce

from mocks import (
    MOCK_CONTRACTS,
    MOCK_DOMAIN,
    MOCK_PRIVATE_KEY,
    MOCK_RECIPIENT,
    MOCK_SENDER,
    assert_no_chain_calls,
    create_mock_chain,
)

FIXED_NOW = 1_700_000_000


def create_signer(chain=None, signer="local", **kwargs) -> AuthorizationSigner:
    if signer == "local":
        signer = LocalAccountSigner(MOCK_PRIVATE_KEY)
    kwargs.setdefault("clock", lambda: FIXED_NOW)
    return AuthorizationSigner(chain or create_mock_chain(), signer, MOCK_CONTRACTS.token, **kwargs)


def create_failing_signer(error: Exception) -> Mock:
    signer = Mock(spec=TypedDataSigner)
    signer.address = MOCK_SENDER
    signer.sign_typed_data = AsyncMock(side_effect=error)
    return signer


class TestInputValidation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("recipient", ["", "0x123", "ab" * 20, "0x" + "zz" * 20, MOCK_RECIPIENT + "\n", None])
    async def test_invalid_recipient(self, recipient):
        chain = create_mock_chain()
        signer = create_signer(chain)

        with pytest.raises(InvalidAddress) as exc_info:
            await signer.sign_transfer_authorization(recipient, "10")

        assert exc_info.value.message == "Please enter a valid wallet address"
        assert_no_chain_calls(chain)
        assert signer.last_authorization is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["", "0", "0.0", "-1", "abc", "1.2.3", ".", "10\n"])
    async def test_invalid_amount(self, amount):
        chain = create_mock_chain()
        signer = create_signer(chain)

        with pytest.raises(InvalidInput):
            await signer.sign_transfer_authorization(MOCK_RECIPIENT, amount)

        assert_no_chain_calls(chain)

    @pytest.mark.asyncio
    async def test_amount_plus_fee_exceeds_balance(self):
        chain = create_mock_chain()
        signer = create_signer(chain)

        with pytest.raises(InsufficientBalance) as exc_info:
            await signer.sign_transfer_authorization(MOCK_RECIPIENT, "19", known_balance="20")

        assert "2 token fee" in exc_info.value.message
        assert exc_info.value.detail == {"required": "21", "available": "20"}
        assert_no_chain_calls(chain)

    @pytest.mark.asyncio
    async def test_negative_fee_rejected(self):
        signer = create_signer()

        with pytest.raises(InvalidInput):
            await signer.sign_transfer_authorization(MOCK_RECIPIENT, "10", fee="-1")

    @pytest.mark.asyncio
    async def test_no_signer_is_not_ready(self):
        chain = create_mock_chain()
        signer = create_signer(chain, signer=None)

        with pytest.raises(NotReady):
            await signer.sign_transfer_authorization(MOCK_RECIPIENT, "10")

        chain.get_domain_separator_params.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unreadable_domain_is_not_ready(self):
        chain = create_mock_chain()
        chain.get_domain_separator_params.side_effect = TransactionFailed("execution reverted")
        signer = create_signer(chain)

        with pytest.raises(NotReady) as exc_info:
            await signer.sign_transfer_authorization(MOCK_RECIPIENT, "10")

        assert exc_info.value.message == "Token contract is not available on this network"


class TestSigning:

    @pytest.mark.asyncio
    async def test_value_includes_fee(self):
        signer = create_signer()

        auth = await signer.sign_transfer_authorization(
            MOCK_RECIPIENT, "10", fee=2, known_balance="20"
        )

        assert auth.value == 12_000000
        assert auth.sender == MOCK_SENDER
        assert auth.recipient == MOCK_RECIPIENT
        assert auth.domain == MOCK_DOMAIN
        assert signer.last_authorization is auth

    @pytest.mark.asyncio
    async def test_default_fee_from_settings(self):
        settings = ProtocolSettings(transfer_fee=Decimal("0.5"))
        signer = create_signer(settings=settings)

        auth = await signer.sign_transfer_authorization(MOCK_RECIPIENT, "1.25")

        assert signer.fee == Decimal("0.5")
        assert auth.value == 1_750000

    @pytest.mark.asyncio
    async def test_sub_unit_value_rounds_half_up(self):
        signer = create_signer()

        auth = await signer.sign_transfer_authorization(MOCK_RECIPIENT, "1.0000005", fee=0)

        assert auth.value == 1_000001

    @pytest.mark.asyncio
    async def test_precision_fallback(self):
        chain = create_mock_chain(precision=TransactionFailed("decimals() reverted"))
        signer = create_signer(chain)

        auth = await signer.sign_transfer_authorization(MOCK_RECIPIENT, "10")

        assert auth.value == 12_000000

    @pytest.mark.asyncio
    async def test_precision_from_chain(self):
        chain = create_mock_chain(precision=18)
        signer = create_signer(chain)

        auth = await signer.sign_transfer_authorization(MOCK_RECIPIENT, "1", fee=0)

        assert auth.value == 10 ** 18

    @pytest.mark.asyncio
    async def test_validity_window(self):
        signer = create_signer()

        auth = await signer.sign_transfer_authorization(MOCK_RECIPIENT, "10")

        assert auth.validAfter == FIXED_NOW
        assert auth.validBefore == FIXED_NOW + 900

    @pytest.mark.asyncio
    async def test_nonces_are_fresh(self):
        signer = create_signer()

        first = await signer.sign_transfer_authorization(MOCK_RECIPIENT, "10")
        second = await signer.sign_transfer_authorization(MOCK_RECIPIENT, "10")

        assert first.nonce != second.nonce
        assert len(first.nonce) == 66
        assert first.nonce.startswith("0x")

    @pytest.mark.asyncio
    async def test_signature_recovers_to_sender(self):
        signer = create_signer()

        auth = await signer.sign_transfer_authorization(MOCK_RECIPIENT, "10")

        typed_data = build_transfer_typed_data(
            auth.domain,
            sender=auth.sender,
            recipient=auth.recipient,
            value=auth.value,
            valid_after=auth.validAfter,
            valid_before=auth.validBefore,
            nonce=auth.nonce,
        )
        signable = encode_typed_data(full_message=typed_data.to_dict())
        recovered = Account.recover_message(signable, signature=auth.signature)

        assert recovered == MOCK_SENDER
        assert auth.v in (27, 28)
        assert auth.components.to_packed_hex() == auth.signature.lower()

    @pytest.mark.asyncio
    async def test_payment_request_matches_authorization(self):
        signer = create_signer()

        auth = await signer.sign_transfer_authorization(MOCK_RECIPIENT, "10")
        body = auth.to_payment_request().to_dict()

        assert body["message"]["value"] == "12000000"
        assert body["message"]["nonce"] == auth.nonce
        assert body["message"]["signature"] == auth.signature
        assert body["domain"]["chainId"] == MOCK_DOMAIN.chainId

    @pytest.mark.asyncio
    async def test_clear_discards_authorization(self):
        signer = create_signer()
        await signer.sign_transfer_authorization(MOCK_RECIPIENT, "10")

        signer.clear()

        assert signer.last_authorization is None


class TestSignerErrors:

    @pytest.mark.asyncio
    async def test_user_rejection(self):
        signer = create_signer(signer=create_failing_signer(Exception("User rejected the request.")))

        with pytest.raises(UserRejected) as exc_info:
            await signer.sign_transfer_authorization(MOCK_RECIPIENT, "10")

        assert exc_info.value.message == "Request was cancelled by the user"
        assert signer.last_authorization is None

    @pytest.mark.asyncio
    async def test_other_signer_failure_keeps_message(self):
        signer = create_signer(signer=create_failing_signer(RuntimeError("device disconnected")))

        with pytest.raises(SigningFailed) as exc_info:
            await signer.sign_transfer_authorization(MOCK_RECIPIENT, "10")

        assert exc_info.value.message == "device disconnected"


def test_generate_nonce_is_bytes32_hex():
    nonce = generate_nonce()

    assert nonce.startswith("0x")
    assert len(nonce) == 66
    int(nonce, 16)
