"""
Shared fixtures: a host with two funded tokens, a factory and their pair.
"""
import pytest

from amm_core.factory import Factory
from amm_core.host import Host
from amm_core.ledger import Token
from amm_core.testing import (
    FACTORY_ADDRESS,
    GENESIS_TIME,
    TOKEN_A_ADDRESS,
    TOKEN_B_ADDRESS,
    TOTAL_SUPPLY,
    WALLET,
)


@pytest.fixture
def host():
    return Host(chain_id=1, block_timestamp=GENESIS_TIME)


@pytest.fixture
def factory(host):
    return host.deploy(Factory(host, FACTORY_ADDRESS, fee_to_setter=WALLET))


@pytest.fixture
def tokens(host):
    token_a = host.deploy(Token(host, TOKEN_A_ADDRESS, "Token A", "TKA",
                                initial_supply=TOTAL_SUPPLY, owner=WALLET))
    token_b = host.deploy(Token(host, TOKEN_B_ADDRESS, "Token B", "TKB",
                                initial_supply=TOTAL_SUPPLY, owner=WALLET))
    return token_a, token_b


@pytest.fixture
def pair(host, factory, tokens):
    address = factory.create_pair(WALLET, tokens[0].address, tokens[1].address)
    return host.get_contract(address)


@pytest.fixture
def token0(host, pair):
    return host.get_contract(pair.token0)


@pytest.fixture
def token1(host, pair):
    return host.get_contract(pair.token1)
