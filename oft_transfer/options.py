"""
Message Options & Unit Helpers

- Executor options blob for the bridge send (type 3 options)
- Left padding of 20-byte addresses to the protocol's 32-byte width
- Decimal <-> token base unit conversion
"""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from web3 import Web3


OPTIONS_TYPE_3 = 3
EXECUTOR_WORKER_ID = 1
OPTION_TYPE_LZRECEIVE = 1

ADDRESS_WIDTH = 32
UINT128_MAX = 2 ** 128 - 1

# uint256 needs 78 digits
DECIMAL_PRECISION = 80


def executor_lz_receive_option(gas_limit: int, native_value: int = 0) -> str:
    """
    Build a type 3 options blob with a single executor lzReceive option

    Layout:
        uint16 type(3) | uint8 worker(1) | uint16 size | uint8 option(1) | uint128 gas [| uint128 value]

    The value word is only present when native_value is non-zero.

    Args:
        gas_limit: Gas budget for lzReceive on the destination
        native_value: Native value forwarded with the call

    Returns:
        0x-prefixed hex string
    """
    if not 0 < gas_limit <= UINT128_MAX:
        raise ValueError(f"gas limit out of range: {gas_limit}")
    if not 0 <= native_value <= UINT128_MAX:
        raise ValueError(f"native value out of range: {native_value}")

    option = gas_limit.to_bytes(16, 'big')
    if native_value:
        option += native_value.to_bytes(16, 'big')

    blob = (
        OPTIONS_TYPE_3.to_bytes(2, 'big')
        + EXECUTOR_WORKER_ID.to_bytes(1, 'big')
        + (len(option) + 1).to_bytes(2, 'big')
        + OPTION_TYPE_LZRECEIVE.to_bytes(1, 'big')
        + option
    )
    return '0x' + blob.hex()


def pad_address(address: str) -> bytes:
    """Left-pad an address with zeros to 32 bytes"""
    raw = Web3.to_bytes(hexstr=address)
    if len(raw) > ADDRESS_WIDTH:
        raise ValueError(f"address wider than {ADDRESS_WIDTH} bytes: {address}")
    return raw.rjust(ADDRESS_WIDTH, b'\0')


def parse_amount(amount: Union[str, int, Decimal]) -> Decimal:
    """Parse a human readable token amount; must be finite and positive"""
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise ValueError(f"invalid amount: {amount!r}") from e
    if not value.is_finite() or value <= 0:
        raise ValueError(f"amount must be a positive number: {amount!r}")
    return value


def to_base_units(amount: Union[str, int, Decimal], decimals: int = 18) -> int:
    """
    Convert a human readable amount to integer base units

    Raises:
        ValueError: amount has more fractional digits than the token supports
    """
    value = parse_amount(amount)
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"amount {amount} has more than {decimals} decimal places")
    return int(scaled)


def from_base_units(raw: int, decimals: int = 18) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return Decimal(raw).scaleb(-decimals)
