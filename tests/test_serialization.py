"""
Tests for unsigned transaction serialization.
"""

from __future__ import annotations

import pytest

from spendcore.models import TransactionSkeleton, TxInput, TxOutput
from spendcore.serialization import (
    address_to_scriptpubkey,
    get_network,
    get_txid,
    serialize_input,
    serialize_outpoint,
    serialize_output,
    serialize_unsigned_tx,
    varint,
)

TXID = "0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
P2WPKH_SCRIPT = "0014751e76e8199196d454941c45d1b3a323f1433bd6"


class TestVarint:
    """Tests for varint encoding."""

    def test_single_byte(self) -> None:
        """Test single-byte varint (0-252)."""
        assert varint(0) == bytes([0x00])
        assert varint(252) == bytes([0xFC])

    def test_two_bytes(self) -> None:
        """Test two-byte varint (253-65535)."""
        assert varint(253) == bytes([0xFD, 0xFD, 0x00])
        assert len(varint(65535)) == 3

    def test_four_and_eight_bytes(self) -> None:
        assert varint(65536)[0] == 0xFE
        assert len(varint(65536)) == 5
        assert varint(4294967296)[0] == 0xFF
        assert len(varint(4294967296)) == 9


class TestAddressToScriptPubKey:
    """Tests for address to scriptPubKey conversion."""

    def test_p2wpkh_mainnet(self, mainnet_address: str) -> None:
        """Test BIP-0173 P2WPKH vector."""
        assert address_to_scriptpubkey(mainnet_address).hex() == P2WPKH_SCRIPT

    def test_p2wpkh_regtest(self) -> None:
        address = "bcrt1qw508d6qejxtdg4y5r3zarvary0c5xw7kygt080"
        assert address_to_scriptpubkey(address, "regtest").hex() == P2WPKH_SCRIPT

    def test_p2wpkh_testnet(self) -> None:
        address = "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx"
        assert address_to_scriptpubkey(address, "testnet").hex() == P2WPKH_SCRIPT

    def test_p2wsh_mainnet(self) -> None:
        address = "bc1qrp33g0q5c5txsp9arysrx4k6zdkfs4nce4xj0gdcccefvpysxf3qccfmv3"
        script = address_to_scriptpubkey(address)

        # P2WSH: OP_0 <32-byte-hash>
        assert script[:2] == bytes([0x00, 0x20])
        assert len(script) == 34

    def test_p2pkh_mainnet(self) -> None:
        script = address_to_scriptpubkey("1BvBMSEYstWetqTFn5Au4m4GFg7xJaNVN2")

        # P2PKH: OP_DUP OP_HASH160 <20-byte-hash> OP_EQUALVERIFY OP_CHECKSIG
        assert script[:3] == bytes([0x76, 0xA9, 0x14])
        assert script[-2:] == bytes([0x88, 0xAC])
        assert len(script) == 25

    def test_p2sh_mainnet(self) -> None:
        script = address_to_scriptpubkey("3J98t1WpEZ73CNmQviecrnyiWrnqRhWNLy")

        # P2SH: OP_HASH160 <20-byte-hash> OP_EQUAL
        assert script[:2] == bytes([0xA9, 0x14])
        assert script[-1] == 0x87
        assert len(script) == 23

    def test_wrong_network(self) -> None:
        with pytest.raises(ValueError, match="does not belong to avian"):
            address_to_scriptpubkey("1BvBMSEYstWetqTFn5Au4m4GFg7xJaNVN2", "avian")

    def test_invalid_bech32(self) -> None:
        with pytest.raises(ValueError, match="Invalid bech32"):
            address_to_scriptpubkey("bc1invalid")

    def test_invalid_base58(self) -> None:
        with pytest.raises(ValueError, match="Invalid base58"):
            address_to_scriptpubkey("1InvalidAddress")

    def test_unknown_network(self) -> None:
        with pytest.raises(ValueError, match="Unknown network"):
            get_network("dogecoin")


class TestSerializeTransaction:
    """Tests for unsigned transaction serialization."""

    def skeleton(self) -> TransactionSkeleton:
        return TransactionSkeleton(
            inputs=(TxInput(txid=TXID, vout=1, value=100_000, address="RSource"),),
            outputs=(
                TxOutput(address="ignored", value=90_000, scriptpubkey=P2WPKH_SCRIPT),
                TxOutput(address="ignored", value=7_740, scriptpubkey=P2WPKH_SCRIPT),
            ),
            fee=2_260,
            send_amount=90_000,
            change_index=1,
        )

    def test_outpoint_reverses_txid(self) -> None:
        result = serialize_outpoint(TXID, 1)

        assert result[:32] == bytes.fromhex(TXID)[::-1]
        assert result[32:] == bytes([0x01, 0x00, 0x00, 0x00])

    def test_input_has_empty_script_sig(self) -> None:
        inp = TxInput(txid=TXID, vout=0, value=1, address="R")
        result = serialize_input(inp)

        assert len(result) == 36 + 1 + 4
        assert result[36] == 0x00
        assert result[-4:] == bytes([0xFF] * 4)

    def test_output_from_address(self, mainnet_address: str) -> None:
        result = serialize_output(TxOutput(address=mainnet_address, value=1), "mainnet")

        assert result[:8] == (1).to_bytes(8, "little")
        assert result[8] == 22
        assert result[9:].hex() == P2WPKH_SCRIPT

    def test_legacy_layout(self) -> None:
        raw = serialize_unsigned_tx(self.skeleton())

        assert raw[:4] == bytes([0x02, 0x00, 0x00, 0x00])
        assert raw[4] == 1  # one input
        assert raw[5:37] == bytes.fromhex(TXID)[::-1]
        assert raw[-4:] == bytes(4)
        # version + count + input + count + 2 * (value + len + script) + locktime
        assert len(raw) == 4 + 1 + 41 + 1 + 2 * (8 + 1 + 22) + 4

    def test_segwit_marker(self) -> None:
        legacy = serialize_unsigned_tx(self.skeleton())
        segwit = serialize_unsigned_tx(self.skeleton(), segwit=True)

        assert segwit[4:6] == bytes([0x00, 0x01])
        # marker, flag and one empty witness
        assert len(segwit) == len(legacy) + 3

    def test_txid_is_stable(self) -> None:
        txid = get_txid(self.skeleton())

        assert len(txid) == 64
        assert txid == get_txid(self.skeleton())
