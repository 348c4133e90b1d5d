from __future__ import annotations

from decimal import Decimal, localcontext

from batching_server.errors import ConversionOverflowError
from batching_server.schemas.asset import Quotation
from batching_server.schemas.coin_info import CoinInfo

PRICE_DECIMALS = 12
PRICE_SCALE = 10**PRICE_DECIMALS
U128_MAX = 2**128 - 1
# 10^27 * 10^12 already exceeds 2^128
MAX_INTEGER_DIGITS = 27

DEFAULT_BLOCKCHAIN = "FIAT"


def convert_decimal_to_u128(value: Decimal) -> int:
    """Scale a non-negative decimal by 10^12 into an unsigned 128-bit integer.

    Integer and fractional parts are scaled separately; fractional digits past
    the 12th are truncated.
    """
    if not value.is_finite():
        raise ConversionOverflowError(f"cannot convert non-finite decimal {value}")
    if value < 0:
        raise ConversionOverflowError(f"cannot convert negative decimal {value} to unsigned")

    # int() cost grows with the exponent, so bound the magnitude first
    if value.adjusted() >= MAX_INTEGER_DIGITS:
        raise ConversionOverflowError(f"decimal {value} is too large for u128 fixed point")
    if value.adjusted() < -PRICE_DECIMALS:
        return 0

    integer_part = int(value)
    with localcontext() as ctx:
        # exact arithmetic: enough digits for every input coefficient plus the scale
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + PRICE_DECIMALS + 1)
        fraction = value - integer_part
        scaled_fraction = int(fraction.scaleb(PRICE_DECIMALS))

    scaled_integer = integer_part * PRICE_SCALE
    if scaled_integer > U128_MAX or scaled_fraction > U128_MAX:
        raise ConversionOverflowError(f"decimal {value} is too large for u128 fixed point")
    return min(scaled_integer + scaled_fraction, U128_MAX)


def convert_to_coin_info(quotation: Quotation) -> CoinInfo:
    return CoinInfo(
        symbol=quotation.symbol,
        name=quotation.name,
        blockchain=quotation.blockchain or DEFAULT_BLOCKCHAIN,
        price=convert_decimal_to_u128(quotation.price),
        # supply is not published yet
        supply=0,
        last_update_timestamp=max(int(quotation.timestamp), 0),
    )
