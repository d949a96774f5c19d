"""
Tests for the token ledger: balances, allowances and signature-based approval.
"""
import pytest

from amm_core.crypto import generate_key_pair, public_key_to_address, serialize_public_key
from amm_core.errors import ArithmeticBoundsError, ValidationError
from amm_core.ledger import Token, sign_permit
from amm_core.testing import OTHER, TOKEN_A_ADDRESS, TOTAL_SUPPLY, WALLET, make_address
from amm_core.uint import UINT256_MAX

SPENDER = make_address(0x5E)


@pytest.fixture
def token(tokens):
    return tokens[0]


@pytest.fixture
def owner_key():
    private_key, _ = generate_key_pair()
    return private_key


def owner_of(private_key):
    return public_key_to_address(serialize_public_key(private_key.public_key()))


class TestTransfers:
    def test_initial_supply(self, host, token):
        assert token.total_supply == TOTAL_SUPPLY
        assert token.balance_of(WALLET) == TOTAL_SUPPLY
        minted = [e for e in host.events if e.address == TOKEN_A_ADDRESS][0]
        assert (minted.name, minted.to, minted.value) == ('Transfer', WALLET, TOTAL_SUPPLY)

    def test_initial_supply_requires_owner(self, host):
        with pytest.raises(ValueError):
            Token(host, make_address(0xEE), "No Owner", "NO", initial_supply=1)

    def test_transfer(self, host, token):
        assert token.transfer(WALLET, OTHER, 100) is True
        assert token.balance_of(WALLET) == TOTAL_SUPPLY - 100
        assert token.balance_of(OTHER) == 100
        event = host.events[-1]
        assert (event.name, event.from_, event.to, event.value) == ('Transfer', WALLET, OTHER, 100)

    def test_transfer_exceeding_balance(self, token):
        with pytest.raises(ArithmeticBoundsError, match="ds-math-sub-underflow"):
            token.transfer(OTHER, WALLET, 1)
        assert token.balance_of(WALLET) == TOTAL_SUPPLY

    def test_approve_and_transfer_from(self, token):
        assert token.approve(WALLET, SPENDER, 500) is True
        assert token.allowance(WALLET, SPENDER) == 500

        assert token.transfer_from(SPENDER, WALLET, OTHER, 200) is True
        assert token.allowance(WALLET, SPENDER) == 300
        assert token.balance_of(OTHER) == 200

    def test_transfer_from_over_allowance(self, token):
        token.approve(WALLET, SPENDER, 100)
        with pytest.raises(ArithmeticBoundsError):
            token.transfer_from(SPENDER, WALLET, OTHER, 101)
        assert token.allowance(WALLET, SPENDER) == 100
        assert token.balance_of(OTHER) == 0

    def test_unlimited_allowance_is_not_spent(self, token):
        token.approve(WALLET, SPENDER, UINT256_MAX)
        token.transfer_from(SPENDER, WALLET, OTHER, 1000)
        assert token.allowance(WALLET, SPENDER) == UINT256_MAX

    def test_negative_transfer_is_rejected(self, token):
        token.transfer(WALLET, OTHER, 500)

        with pytest.raises(ArithmeticBoundsError, match="INVALID_AMOUNT"):
            token.transfer(OTHER, WALLET, -400)

        assert token.balance_of(OTHER) == 500
        assert token.balance_of(WALLET) == TOTAL_SUPPLY - 500

    @pytest.mark.parametrize("value", [1.5, "10", True, None, UINT256_MAX + 1])
    def test_non_uint_amount_is_rejected(self, token, value):
        with pytest.raises(ArithmeticBoundsError, match="INVALID_AMOUNT"):
            token.transfer(WALLET, OTHER, value)
        assert token.balance_of(OTHER) == 0

    def test_negative_approve_is_rejected(self, token):
        with pytest.raises(ArithmeticBoundsError, match="INVALID_AMOUNT"):
            token.approve(WALLET, SPENDER, -1)
        assert token.allowance(WALLET, SPENDER) == 0

    def test_negative_transfer_from_keeps_allowance(self, token):
        token.transfer(WALLET, OTHER, 500)
        token.approve(OTHER, SPENDER, 100)

        with pytest.raises(ArithmeticBoundsError, match="INVALID_AMOUNT"):
            token.transfer_from(SPENDER, OTHER, WALLET, -400)

        assert token.allowance(OTHER, SPENDER) == 100
        assert token.balance_of(OTHER) == 500


class TestPermit:
    def test_permit(self, host, token, owner_key):
        deadline = host.block_timestamp + 3600
        public_key, signature = sign_permit(token, owner_key, SPENDER, 1234, deadline)
        owner = owner_of(owner_key)

        token.permit(public_key, SPENDER, 1234, deadline, signature)

        assert token.allowance(owner, SPENDER) == 1234
        assert token.nonces(owner) == 1
        approval = host.events[-1]
        assert (approval.name, approval.owner, approval.value) == ('Approval', owner, 1234)

    def test_expired(self, host, token, owner_key):
        deadline = host.block_timestamp + 10
        public_key, signature = sign_permit(token, owner_key, SPENDER, 1, deadline)
        host.advance_time(11)

        with pytest.raises(ValidationError, match="EXPIRED"):
            token.permit(public_key, SPENDER, 1, deadline, signature)

    def test_deadline_is_inclusive(self, host, token, owner_key):
        deadline = host.block_timestamp + 10
        public_key, signature = sign_permit(token, owner_key, SPENDER, 1, deadline)
        host.advance_time(10)

        token.permit(public_key, SPENDER, 1, deadline, signature)

    def test_tampered_value(self, host, token, owner_key):
        deadline = host.block_timestamp + 3600
        public_key, signature = sign_permit(token, owner_key, SPENDER, 1, deadline)

        with pytest.raises(ValidationError, match="INVALID_SIGNATURE"):
            token.permit(public_key, SPENDER, 2, deadline, signature)

    def test_replay_is_rejected(self, host, token, owner_key):
        deadline = host.block_timestamp + 3600
        public_key, signature = sign_permit(token, owner_key, SPENDER, 7, deadline)
        token.permit(public_key, SPENDER, 7, deadline, signature)

        with pytest.raises(ValidationError, match="INVALID_SIGNATURE"):
            token.permit(public_key, SPENDER, 7, deadline, signature)
        assert token.nonces(owner_of(owner_key)) == 1

    def test_signature_is_bound_to_token(self, host, tokens, owner_key):
        deadline = host.block_timestamp + 3600
        public_key, signature = sign_permit(tokens[0], owner_key, SPENDER, 7, deadline)

        with pytest.raises(ValidationError, match="INVALID_SIGNATURE"):
            tokens[1].permit(public_key, SPENDER, 7, deadline, signature)

    def test_signature_from_other_key(self, host, token, owner_key):
        deadline = host.block_timestamp + 3600
        _, signature = sign_permit(token, owner_key, SPENDER, 7, deadline)
        other_key, _ = generate_key_pair()
        other_public = serialize_public_key(other_key.public_key())

        with pytest.raises(ValidationError, match="INVALID_SIGNATURE"):
            token.permit(other_public, SPENDER, 7, deadline, signature)

    def test_domain_separator_depends_on_chain(self, host, token):
        separator = token.domain_separator
        host.chain_id = 5
        assert token.domain_separator != separator
