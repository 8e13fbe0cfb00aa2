"""
Database Schemas for the Shop

Each Pydantic model represents a collection in MongoDB. The collection name is
simply the lowercase of the class name (e.g., Product -> "product").
Keys are camelCase so stored documents match the JSON the API returns.
"""
from pydantic import BaseModel, Field
from typing import Optional, List


class Category(BaseModel):
    """
    Categories collection schema
    Collection name: "category"
    """
    name: str = Field(..., description="Display name, e.g. 'Electronics'")
    slug: str = Field(..., description="URL-safe identifier used by the catalog filter")
    description: Optional[str] = Field(None, description="Category description")


class Product(BaseModel):
    """
    Products collection schema
    Collection name: "product"
    """
    name: str = Field(..., description="Product name")
    description: str = Field("", description="Product description")
    price: float = Field(..., ge=0, description="Base price in dollars")
    stock: int = Field(0, ge=0, description="Units available for the base product")
    categoryId: Optional[str] = Field(None, description="Referenced Category _id as string")
    imageUrl: Optional[str] = Field(None, description="Default image URL")
    averageRating: Optional[float] = Field(None, description="Denormalized review average")
    reviewCount: Optional[int] = Field(None, description="Denormalized review count")


class ProductVariant(BaseModel):
    """
    Product variants collection schema
    Collection name: "productvariant"
    """
    productId: str = Field(..., description="Owning Product _id as string")
    sku: Optional[str] = Field(None, description="Stock keeping unit, unique when present")
    size: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    price: Optional[float] = Field(None, ge=0, description="Overrides the product price when set")
    stock: int = Field(0, ge=0, description="Units available for this variant")
    imageUrl: Optional[str] = None
    isDefault: bool = False


class ProductImage(BaseModel):
    """
    Product gallery collection schema
    Collection name: "productimage"
    """
    productId: str = Field(..., description="Owning Product _id as string")
    url: str
    alt: Optional[str] = None
    order: int = Field(0, description="Display position inside the gallery")
    isPrimary: bool = False


class Rating(BaseModel):
    """
    Ratings collection schema
    Collection name: "rating"
    """
    productId: str
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = None
    guestName: Optional[str] = None


class Review(BaseModel):
    """
    Reviews collection schema
    Collection name: "review"
    """
    productId: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class ClientInfo(BaseModel):
    name: str = Field(..., min_length=2, description="Customer full name")
    phone: str = Field(..., min_length=8, description="Contact phone number")
    address: str = Field(..., min_length=10, description="Shipping address")


class OrderItem(BaseModel):
    productId: str
    variantId: Optional[str] = None
    quantity: int = Field(..., ge=1)
    priceAtTime: float = Field(..., ge=0, description="Effective unit price charged")


class Order(BaseModel):
    """
    Orders collection schema
    Collection name: "order"
    """
    clientInfo: ClientInfo
    items: List[OrderItem] = Field(default_factory=list)
    totalAmount: float = Field(..., ge=0, description="Order total in dollars")
    status: str = Field("pending", description="pending/processing/completed/cancelled")


# ---------------------- Request payloads ----------------------

class VariantInput(BaseModel):
    sku: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    stock: int = Field(0, ge=0)
    imageUrl: Optional[str] = None
    isDefault: bool = False


class ProductPayload(BaseModel):
    name: str
    description: str = ""
    price: float = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    imageUrl: Optional[str] = None
    categoryId: Optional[str] = None
    images: Optional[List[str]] = Field(None, description="Gallery URLs, first one is primary")
    variants: Optional[List[VariantInput]] = None


class OrderLine(BaseModel):
    id: str = Field(..., description="Product id")
    quantity: int = Field(..., ge=1)
    price: Optional[float] = Field(None, ge=0, description="Price shown to the customer")
    variantId: Optional[str] = None


class OrderRequest(BaseModel):
    clientInfo: ClientInfo
    cartItems: List[OrderLine] = Field(..., min_length=1)
