from pydantic import BaseModel, ConfigDict


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float


class CollegeRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    city: str
    state: str
    state_code: str
    country: str
    website: str | None = None
    # public | private | community | technical | university | college
    type: str | None = None
    coordinates: Coordinates | None = None


class CollegeSearchOut(BaseModel):
    colleges: list[CollegeRecord]
    total: int
    has_more: bool
    source: str
    stale: bool = False
