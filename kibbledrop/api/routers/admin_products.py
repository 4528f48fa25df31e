# kibbledrop/api/routers/admin_products.py
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kibbledrop.api.deps import require_admin
from kibbledrop.data.database import get_db
from kibbledrop.domain.schemas import ProductIn, ProductOut
from kibbledrop.services.product_service import ProductService

router = APIRouter(prefix="/api/admin/products", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[ProductOut])
def list_products(db: Session = Depends(get_db)):
    return ProductService(db).list_products()


@router.post("", response_model=ProductOut, status_code=201)
def create_product(payload: ProductIn, db: Session = Depends(get_db)):
    return ProductService(db).create_product(payload)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return ProductService(db).get_product(product_id)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(product_id: int, payload: ProductIn, db: Session = Depends(get_db)):
    return ProductService(db).update_product(product_id, payload)


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    ProductService(db).delete_product(product_id)
    return {"message": "Product deleted successfully"}
