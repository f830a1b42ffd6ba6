from pydantic import BaseModel


class SupplierCreate(BaseModel):
    name: str


class SupplierResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True
