from pydantic import BaseModel


class SuggestionRead(BaseModel):
    id: int
    title: str
    content: str
    category: str
    image: str

    model_config = {"from_attributes": True}
