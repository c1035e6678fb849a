from fastapi import APIRouter, HTTPException, Depends, Query

from database import get_db
from models.user import User
from models.product import CatalogProduct, ProductCreate
from dependencies import get_current_user

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
async def get_products(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(100, ge=1, le=500, description="Items per page"),
    search: str = Query(None, description="Search term for name or SKU"),
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Get warehouse products with pagination"""
    query = {}
    if search:
        query["$or"] = [
            {"name": {"$regex": search, "$options": "i"}},
            {"sku": {"$regex": search, "$options": "i"}}
        ]

    total_count = await db.products.count_documents(query)
    skip = (page - 1) * page_size

    items = await db.products.find(query, {"_id": 0}).sort("name", 1).skip(skip).limit(page_size).to_list(page_size)

    return {
        "items": items,
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total_count": total_count,
            "total_pages": (total_count + page_size - 1) // page_size
        }
    }


@router.post("")
async def create_product(data: ProductCreate, user: User = Depends(get_current_user), db=Depends(get_db)):
    """Create a new warehouse product"""
    if user.role not in ["admin", "manager"]:
        raise HTTPException(status_code=403, detail="Not authorized")

    existing = await db.products.find_one({"sku": data.sku}, {"_id": 0})
    if existing:
        raise HTTPException(status_code=400, detail="SKU already exists")

    product = CatalogProduct(**data.model_dump())
    doc = product.model_dump(mode="json")
    await db.products.insert_one(doc)
    return {"message": "Product created", "product_id": product.product_id}


@router.get("/{product_id}")
async def get_product(product_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    product = await db.products.find_one({"product_id": product_id}, {"_id": 0})
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
