from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.supplier import SupplierCreate, SupplierResponse
from app.services import supplier as supplier_service


router = APIRouter(prefix="/api/v1/suppliers", tags=["suppliers"])


@router.get("", response_model=list[SupplierResponse])
async def list_suppliers(db: AsyncSession = Depends(get_db)):
    return await supplier_service.list_suppliers(db)


@router.post("")
async def add_supplier(data: SupplierCreate, db: AsyncSession = Depends(get_db)):
    supplier = await supplier_service.add_supplier(db, data.name)
    return {"success": True, "supplier": SupplierResponse.model_validate(supplier)}


@router.put("/{supplier_id}")
async def rename_supplier(supplier_id: int, data: SupplierCreate, db: AsyncSession = Depends(get_db)):
    supplier = await supplier_service.rename_supplier(db, supplier_id, data.name)
    return {"success": True, "supplier": SupplierResponse.model_validate(supplier)}


@router.delete("/{supplier_id}")
async def delete_supplier(supplier_id: int, db: AsyncSession = Depends(get_db)):
    updated = await supplier_service.delete_supplier(db, supplier_id)
    return {"success": True, "products_updated": updated}
