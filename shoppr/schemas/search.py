from pydantic import BaseModel, ConfigDict, Field


class SearchRequest(BaseModel):
    """Search request as sent by the client. Field presence is checked by the search service."""
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(default="", description="Raw search phrase typed by the user")
    category_id: str = Field(default="", description="Catalog category identifier")
    category_name: str = Field(default="", description="Human readable category name")
    user_id: str | None = Field(default=None, alias="userId", description="Optional user id for personalization")


class OptimizedQuery(BaseModel):
    """Search phrase rewritten for the catalog"""
    optimized_text: str
    reasoning: str
    used_fallback: bool = False


class Product(BaseModel):
    """Normalized catalog listing"""
    id: str
    title: str
    price: float = Field(..., ge=0)
    currency: str
    image: str
    url: str


class RankedProduct(Product):
    rank: int = Field(..., ge=1)  # 1 is best
    reasoning: str


class SearchResult(BaseModel):
    """Response model for a completed search"""
    success: bool = True
    query: str
    optimized_query: str
    category_id: str
    category_name: str
    products: list[RankedProduct]
    total_results: int
    optimization_reasoning: str


class Category(BaseModel):
    id: str
    name: str
