from pydantic import BaseModel
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    """Base schema whose JSON field names are camelCase (stationId, availableSlots, ...)"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
