"""
Fungible token ledger with allowances and signature-based approvals.

Balances, allowances and permit nonces are stored in world state under the
token's address. The liquidity share issued by a pair is this same ledger.
"""
import logging

import rlp

from amm_core.contract import Contract
from amm_core.crypto import (
    ZERO_ADDRESS,
    generate_hash,
    public_key_to_address,
    serialize_public_key,
    sign,
    verify_signature,
)
from amm_core.errors import ValidationError
from amm_core.events import Approval, Transfer
from amm_core.uint import UINT256_MAX, checked_add, checked_sub, require_uint256

logger = logging.getLogger(__name__)

DOMAIN_TYPEHASH = generate_hash(
    b"EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)")
PERMIT_TYPEHASH = generate_hash(
    b"Permit(address owner,address spender,uint256 value,uint256 nonce,uint256 deadline)")
DOMAIN_VERSION = b"1"


class Token(Contract):
    def __init__(self, host, address: bytes, name: str, symbol: str,
                 decimals: int = 18, initial_supply: int = 0, owner: bytes = None):
        """
        Args:
            host: Host the token lives on
            address: Token address
            name, symbol, decimals: Token metadata
            initial_supply: Amount minted to `owner` on a fresh deployment
            owner: Recipient of the initial supply
        """
        super().__init__(host, address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        if initial_supply:
            if owner is None:
                raise ValueError("owner is required with an initial supply")
            self._mint(owner, initial_supply)

    @property
    def total_supply(self) -> int:
        return self._load('total_supply')

    def balance_of(self, account: bytes) -> int:
        return self._load('balance', account)

    def allowance(self, owner: bytes, spender: bytes) -> int:
        return self._load('allowance', owner, spender)

    def nonces(self, owner: bytes) -> int:
        return self._load('nonce', owner)

    # ------------------------------------------------------------------
    # Internal hooks

    def _mint(self, to: bytes, value: int):
        require_uint256(value)
        self._store('total_supply', value=checked_add(self.total_supply, value))
        self._store('balance', to, value=checked_add(self.balance_of(to), value))
        self._emit(Transfer, from_=ZERO_ADDRESS, to=to, value=value)

    def _burn(self, from_: bytes, value: int):
        require_uint256(value)
        self._store('balance', from_, value=checked_sub(self.balance_of(from_), value))
        self._store('total_supply', value=checked_sub(self.total_supply, value))
        self._emit(Transfer, from_=from_, to=ZERO_ADDRESS, value=value)

    def _approve(self, owner: bytes, spender: bytes, value: int):
        require_uint256(value)
        self._store('allowance', owner, spender, value=value)
        self._emit(Approval, owner=owner, spender=spender, value=value)

    def _transfer(self, from_: bytes, to: bytes, value: int):
        require_uint256(value)
        self._store('balance', from_, value=checked_sub(self.balance_of(from_), value))
        self._store('balance', to, value=checked_add(self.balance_of(to), value))
        self._emit(Transfer, from_=from_, to=to, value=value)

    # ------------------------------------------------------------------
    # Public operations

    def approve(self, owner: bytes, spender: bytes, value: int) -> bool:
        with self.state.transaction():
            self._approve(owner, spender, value)
        return True

    def transfer(self, sender: bytes, to: bytes, value: int) -> bool:
        with self.state.transaction():
            self._transfer(sender, to, value)
        logger.debug(f"{self.symbol} transfer {value} {sender.hex()[:8]} -> {to.hex()[:8]}")
        return True

    def transfer_from(self, sender: bytes, from_: bytes, to: bytes, value: int) -> bool:
        with self.state.transaction():
            require_uint256(value)
            allowed = self.allowance(from_, sender)
            if allowed != UINT256_MAX:
                self._store('allowance', from_, sender, value=checked_sub(allowed, value))
            self._transfer(from_, to, value)
        return True

    # ------------------------------------------------------------------
    # Signature-based approval

    @property
    def domain_separator(self) -> bytes:
        return generate_hash(rlp.encode([
            DOMAIN_TYPEHASH,
            generate_hash(self.name.encode()),
            generate_hash(DOMAIN_VERSION),
            self.host.chain_id,
            self.address,
        ]))

    def permit_digest(self, owner: bytes, spender: bytes, value: int,
                      nonce: int, deadline: int) -> bytes:
        struct_hash = generate_hash(rlp.encode([
            PERMIT_TYPEHASH, owner, spender, value, nonce, deadline
        ]))
        return generate_hash(b'\x19\x01' + self.domain_separator + struct_hash)

    def permit(self, owner_public_key: str, spender: bytes, value: int,
               deadline: int, signature: bytes):
        """
        Approve `spender` on behalf of the owner of `owner_public_key` using
        an offline signature over the permit digest and the owner's current
        nonce.
        """
        with self.state.transaction():
            if deadline < self.host.block_timestamp:
                raise ValidationError("EXPIRED")
            owner = public_key_to_address(owner_public_key)
            nonce = self.nonces(owner)
            digest = self.permit_digest(owner, spender, value, nonce, deadline)
            if not verify_signature(owner_public_key, signature, digest):
                raise ValidationError("INVALID_SIGNATURE")
            self._store('nonce', owner, value=nonce + 1)
            self._approve(owner, spender, value)


def sign_permit(token: Token, private_key, spender: bytes, value: int,
                deadline: int) -> tuple[str, bytes]:
    """
    Produce `(owner_public_key_pem, signature)` for `Token.permit`, signed
    with the owner's next nonce.
    """
    public_key_pem = serialize_public_key(private_key.public_key())
    owner = public_key_to_address(public_key_pem)
    digest = token.permit_digest(owner, spender, value, token.nonces(owner), deadline)
    return public_key_pem, sign(private_key, digest)
