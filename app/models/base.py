"""Shared base for persisted records: camelCase on the wire and on disk."""
import time

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def epoch_ms() -> int:
    return int(time.time() * 1000)


class RecordModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
