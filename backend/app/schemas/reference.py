from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ReferenceOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str


class ClassSectionOut(ReferenceOut):
    name: str
    department: str
    year: int
    section: str


class SubjectOut(ReferenceOut):
    code: str
    name: str
    department: str


class TeacherOut(ReferenceOut):
    first_name: str
    last_name: str
    email: str
    department: str


class RoomOut(ReferenceOut):
    name: str
    building: str
    capacity: int
    has_projector: bool = False
