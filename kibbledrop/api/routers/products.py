# kibbledrop/api/routers/products.py
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kibbledrop.data.database import get_db
from kibbledrop.domain.schemas import ProductOut
from kibbledrop.services.product_service import ProductService

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=List[ProductOut])
def list_products(
    pet_type: str | None = Query(None),
    category: str | None = Query(None),
    featured: bool | None = Query(None),
    db: Session = Depends(get_db),
):
    return ProductService(db).list_products(pet_type=pet_type, category=category, featured=featured)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return ProductService(db).get_product(product_id)
