from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CoinInfo(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    symbol: str
    name: str
    blockchain: str
    supply: int = 0
    last_update_timestamp: int
    price: int
