# backend/schemas/common.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# Base configuration: ORM compatibility, camelCase on the wire, snake_case in Python
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class MessageResponse(BaseModel):
    message: str
