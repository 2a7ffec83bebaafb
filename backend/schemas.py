from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field


ProductCategory = Literal[
    "High-Speed Doors",
    "Personnel Doors",
    "Sectional Doors",
    "Fire Doors",
    "Gates",
    "Barriers",
    "Motors",
    "Control Systems",
    "Ironmongery",
]

# pořadí kategorií pro /products/categories
CATEGORIES: List[str] = list(get_args(ProductCategory))

ProductStatus = Literal["active", "discontinued", "coming_soon"]
ManualType = Literal["installation", "user", "maintenance", "technical"]
OperationType = Literal["manual", "automatic", "semi-automatic"]


# ======================
#   VNOŘENÉ STRUKTURY
# ======================

class Specification(BaseModel):
    key: str = Field(min_length=1)
    value: Union[int, float, str]
    unit: Optional[str] = None


class Manual(BaseModel):
    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    type: ManualType
    language: str
    version: str
    last_updated: datetime
    file_size: int = Field(ge=0, description="Velikost v bajtech")


class Brand(BaseModel):
    id: str
    name: str
    logo: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None


class ProductImages(BaseModel):
    main: Optional[str] = None
    gallery: List[str] = []


class Warranty(BaseModel):
    duration: int = Field(ge=0, description="Měsíce")
    description: Optional[str] = None


class Dimensions(BaseModel):
    height: Optional[float] = None
    width: Optional[float] = None
    depth: Optional[float] = None
    unit: Optional[Literal["mm", "cm", "m"]] = None


class Weight(BaseModel):
    value: float
    unit: Literal["kg", "g"]


class MaxDimensions(BaseModel):
    height: Optional[float] = None
    width: Optional[float] = None
    unit: Optional[Literal["mm", "m"]] = None


class TemperatureRange(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None
    unit: Optional[Literal["C", "F"]] = None


# ======================
#   PRODUKT – SPOLEČNÁ POLE
# ======================

class ProductBase(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    model: str = Field(min_length=1, max_length=100)
    sku: str = Field(min_length=1, max_length=100)
    brand_id: Optional[str] = None
    brand: Optional[Brand] = None
    category: ProductCategory
    sub_category: Optional[str] = None
    description: str = Field(min_length=1)
    short_description: Optional[str] = None
    status: ProductStatus = "active"
    specifications: List[Specification] = []
    manuals: List[Manual] = []
    images: ProductImages = ProductImages()
    features: List[str] = []
    applications: List[str] = []
    related_products: List[str] = []
    technical_drawings: List[str] = []
    certifications: List[str] = []
    warranty: Optional[Warranty] = None
    dimensions: Optional[Dimensions] = None
    weight: Optional[Weight] = None
    search_keywords: List[str] = []


# pole jednotlivých podtypů (sdílí je Create i Out schémata)

class DoorFields(BaseModel):
    door_type: Literal["high-speed", "personnel", "sectional", "roller", "fire", "other"]
    operation_type: OperationType
    materials: List[str] = []
    safety_features: List[str] = []
    max_dimensions: Optional[MaxDimensions] = None
    opening_speed: Optional[float] = None
    cycles_per_day: Optional[int] = None
    insulation_value: Optional[float] = None
    wind_resistance: Optional[str] = None


class GateFields(BaseModel):
    gate_type: Literal["sliding", "swing", "telescopic", "cantilever", "bi-folding"]
    operation_type: OperationType
    materials: List[str] = []
    safety_features: List[str] = []
    max_dimensions: Optional[MaxDimensions] = None
    opening_speed: Optional[float] = None
    cycles_per_day: Optional[int] = None
    max_weight: Optional[float] = None


class MotorFields(BaseModel):
    motor_type: Literal["sliding", "swing", "roller", "sectional", "barrier"]
    power_supply: str
    power_rating: float
    torque: float
    speed_rpm: float
    duty_cycle: str
    ip_rating: str
    temperature_range: Optional[TemperatureRange] = None
    max_weight: Optional[float] = None
    max_width: Optional[float] = None


class ControlSystemFields(BaseModel):
    system_type: Literal["basic", "advanced", "smart"]
    compatibility: List[str] = []
    connectivity: List[str] = []
    input_voltage: str
    output_voltage: str
    ip_rating: str
    interfaces: List[str] = []
    programming_methods: List[str] = []
    safety_inputs: List[str] = []


# ======================
#   VSTUP (POST / PUT)
# ======================

class GenericProductCreate(ProductBase):
    product_type: Literal["product"]


class DoorCreate(DoorFields, ProductBase):
    product_type: Literal["door"]


class GateCreate(GateFields, ProductBase):
    product_type: Literal["gate"]


class MotorCreate(MotorFields, ProductBase):
    product_type: Literal["motor"]


class ControlSystemCreate(ControlSystemFields, ProductBase):
    product_type: Literal["control_system"]


CREATE_SCHEMAS = {
    "product": GenericProductCreate,
    "door": DoorCreate,
    "gate": GateCreate,
    "motor": MotorCreate,
    "control_system": ControlSystemCreate,
}


# ======================
#   VÝSTUP
# ======================

class ProductOut(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_type: Literal["product"] = "product"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DoorOut(DoorFields, ProductOut):
    product_type: Literal["door"] = "door"


class GateOut(GateFields, ProductOut):
    product_type: Literal["gate"] = "gate"


class MotorOut(MotorFields, ProductOut):
    product_type: Literal["motor"] = "motor"


class ControlSystemOut(ControlSystemFields, ProductOut):
    product_type: Literal["control_system"] = "control_system"


AnyProductOut = Annotated[
    Union[DoorOut, GateOut, MotorOut, ControlSystemOut, ProductOut],
    Field(discriminator="product_type"),
]

OUT_SCHEMAS = {
    "product": ProductOut,
    "door": DoorOut,
    "gate": GateOut,
    "motor": MotorOut,
    "control_system": ControlSystemOut,
}


def to_product_out(product) -> ProductOut:
    schema = OUT_SCHEMAS.get(product.product_type, ProductOut)
    return schema.model_validate(product)


class ProductListResponse(BaseModel):
    products: List[AnyProductOut]
    total: int
    pages: int
    current_page: int


class BrandRef(BaseModel):
    id: str
    name: str


class CategoryBrands(BaseModel):
    category: str
    brands: List[BrandRef]


# ======================
#   KOMENTÁŘE
# ======================

class CommentUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    first_name: str
    last_name: str
    profile_image: Optional[str] = None


class CommentOut(BaseModel):
    id: int
    product_id: int
    user_id: int
    parent_id: Optional[int] = None
    user: CommentUser
    text: str
    image: Optional[str] = None
    likes: List[int]
    likes_count: int
    reply_count: int
    created_at: datetime
    updated_at: datetime


class LikesOut(BaseModel):
    likes: List[int]
    likes_count: int
