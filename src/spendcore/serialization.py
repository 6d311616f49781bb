"""
Unsigned transaction serialisation for the external signer.

Converts a TransactionSkeleton into raw transaction bytes with empty
scriptSigs (and empty witnesses for SegWit), resolving output scripts from
addresses. Supports:
- P2WPKH / P2WSH / P2TR bech32 addresses (bc1, tb1, bcrt1)
- P2PKH / P2SH base58 addresses for bitcoin networks and Avian
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass

import base58
import bech32

from spendcore.models import TransactionSkeleton, TxInput, TxOutput


@dataclass(frozen=True)
class NetworkParams:
    bech32_hrp: str | None
    p2pkh_version: int
    p2sh_version: int


NETWORKS: dict[str, NetworkParams] = {
    "mainnet": NetworkParams("bc", 0x00, 0x05),
    "testnet": NetworkParams("tb", 0x6F, 0xC4),
    "signet": NetworkParams("tb", 0x6F, 0xC4),
    "regtest": NetworkParams("bcrt", 0x6F, 0xC4),
    "avian": NetworkParams(None, 0x3C, 0x7A),
}


def get_network(network: str) -> NetworkParams:
    try:
        return NETWORKS[network]
    except KeyError:
        raise ValueError(f"Unknown network: {network}") from None


def address_to_scriptpubkey(address: str, network: str = "mainnet") -> bytes:
    """
    Convert an address to its scriptPubKey.

    Raises:
        ValueError: Malformed address or one that does not belong to the network
    """
    params = get_network(network)

    if params.bech32_hrp and address.lower().startswith(params.bech32_hrp + "1"):
        witver, witprog = bech32.decode(params.bech32_hrp, address)
        if witver is None or witprog is None:
            raise ValueError(f"Invalid bech32 address: {address}")

        program = bytes(witprog)
        if witver == 0:
            if len(program) == 20:
                # P2WPKH: OP_0 <20-byte-pubkeyhash>
                return bytes([0x00, 0x14]) + program
            elif len(program) == 32:
                # P2WSH: OP_0 <32-byte-scripthash>
                return bytes([0x00, 0x20]) + program
        elif witver == 1 and len(program) == 32:
            # P2TR: OP_1 <32-byte-pubkey>
            return bytes([0x51, 0x20]) + program

        raise ValueError(f"Unsupported witness version: {witver}")

    try:
        decoded = base58.b58decode_check(address)
    except ValueError as e:
        raise ValueError(f"Invalid base58 address: {address}") from e

    if len(decoded) != 21:
        raise ValueError(f"Invalid address payload length: {address}")

    version = decoded[0]
    payload = decoded[1:]

    if version == params.p2pkh_version:
        # P2PKH: OP_DUP OP_HASH160 <20-byte-pubkeyhash> OP_EQUALVERIFY OP_CHECKSIG
        return bytes([0x76, 0xA9, 0x14]) + payload + bytes([0x88, 0xAC])
    elif version == params.p2sh_version:
        # P2SH: OP_HASH160 <20-byte-scripthash> OP_EQUAL
        return bytes([0xA9, 0x14]) + payload + bytes([0x87])

    raise ValueError(f"Address version {version} does not belong to {network}")


def varint(n: int) -> bytes:
    """Encode integer as Bitcoin varint."""
    if n < 0xFD:
        return bytes([n])
    elif n <= 0xFFFF:
        return bytes([0xFD]) + struct.pack("<H", n)
    elif n <= 0xFFFFFFFF:
        return bytes([0xFE]) + struct.pack("<I", n)
    else:
        return bytes([0xFF]) + struct.pack("<Q", n)


def serialize_outpoint(txid: str, vout: int) -> bytes:
    """Serialize outpoint (txid:vout)."""
    # txid is in RPC format (big-endian), need to reverse for raw tx
    txid_bytes = bytes.fromhex(txid)[::-1]
    return txid_bytes + struct.pack("<I", vout)


def serialize_input(inp: TxInput) -> bytes:
    """Serialize a transaction input with an empty scriptSig."""
    result = serialize_outpoint(inp.txid, inp.vout)
    result += bytes([0x00])
    result += struct.pack("<I", inp.sequence)
    return result


def serialize_output(out: TxOutput, network: str = "mainnet") -> bytes:
    """Serialize a transaction output."""
    result = struct.pack("<Q", out.value)
    scriptpubkey = (
        bytes.fromhex(out.scriptpubkey)
        if out.scriptpubkey
        else address_to_scriptpubkey(out.address, network)
    )
    result += varint(len(scriptpubkey))
    result += scriptpubkey
    return result


def serialize_unsigned_tx(
    skeleton: TransactionSkeleton,
    network: str = "mainnet",
    segwit: bool = False,
    version: int = 2,
    locktime: int = 0,
) -> bytes:
    """
    Serialize a skeleton as an unsigned transaction.

    Args:
        skeleton: Balanced transaction skeleton
        network: Network used to resolve output addresses
        segwit: Emit marker/flag and empty witnesses
        version: Transaction version
        locktime: nLockTime

    Returns:
        Raw transaction bytes, inputs and outputs in skeleton order
    """
    result = struct.pack("<I", version)

    if segwit:
        result += bytes([0x00, 0x01])

    result += varint(len(skeleton.inputs))
    for inp in skeleton.inputs:
        result += serialize_input(inp)

    result += varint(len(skeleton.outputs))
    for out in skeleton.outputs:
        result += serialize_output(out, network)

    if segwit:
        for _ in skeleton.inputs:
            result += bytes([0x00])  # Empty witness

    result += struct.pack("<I", locktime)
    return result


def get_txid(skeleton: TransactionSkeleton, network: str = "mainnet", version: int = 2) -> str:
    """Calculate txid (double SHA256 of the non-witness serialization)."""
    data = serialize_unsigned_tx(skeleton, network, segwit=False, version=version)
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()[::-1].hex()
