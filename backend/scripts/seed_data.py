#!/usr/bin/env python3
"""
Naplní katalog ukázkovými produkty (dveře, brána, motor, řídicí jednotka).

Spuštění z backend/:
    python -m scripts.seed_data
    python -m scripts.seed_data --admin-email admin@example.com --admin-password tajneheslo1
"""
import argparse
from typing import List

from pydantic import ValidationError

from auth_utils import find_user_by_email, hash_password
from database import Base, SessionLocal, engine
from models import PRODUCT_MODELS, Product, User
from schemas import CREATE_SCHEMAS

BRANDS = {
    "dynaco": {"id": "dynaco", "name": "Dynaco", "website": "https://www.dynacodoor.com"},
    "came": {"id": "came", "name": "CAME", "website": "https://www.came.com"},
    "nice": {"id": "nice", "name": "Nice", "website": "https://www.niceforyou.com"},
    "bft": {"id": "bft", "name": "BFT", "website": "https://www.bft-automation.com"},
}


def _manual(title, url, type_, version, last_updated, file_size):
    return {
        "title": title,
        "url": url,
        "type": type_,
        "language": "English",
        "version": version,
        "last_updated": last_updated,
        "file_size": file_size,
    }


SAMPLE_PRODUCTS = [
    {
        "product_type": "door",
        "name": "High-Speed Roll-Up Door HS100",
        "model": "HS100",
        "sku": "HS100-001",
        "brand_id": "dynaco",
        "brand": BRANDS["dynaco"],
        "category": "High-Speed Doors",
        "description": "Advanced high-speed roll-up door designed for intensive use in industrial environments",
        "short_description": "Industrial high-speed door with advanced safety features",
        "door_type": "high-speed",
        "operation_type": "automatic",
        "materials": ["PVC", "Aluminum"],
        "safety_features": ["Light Curtain", "Safety Edge", "Emergency Stop"],
        "max_dimensions": {"height": 5000, "width": 5000, "unit": "mm"},
        "opening_speed": 2.5,
        "cycles_per_day": 1000,
        "insulation_value": 2.3,
        "wind_resistance": "Class 4",
        "specifications": [
            {"key": "Max Opening Speed", "value": 2.5, "unit": "m/s"},
            {"key": "Max Closing Speed", "value": 0.5, "unit": "m/s"},
            {"key": "Wind Resistance", "value": "Class 4"},
        ],
        "features": ["Self-reinserting curtain", "Frequency inverter operation", "Soft start/stop"],
        "applications": ["Manufacturing facilities", "Warehouses", "Cold storage"],
        "images": {
            "main": "/images/products/hs100-main.jpg",
            "gallery": [f"/images/products/hs100-gallery{i}.jpg" for i in range(1, 4)],
        },
        "manuals": [
            _manual("Installation Manual", "/manuals/hs100-install.pdf", "installation", "1.0", "2024-01-15", 2500000),
            _manual("User Guide", "/manuals/hs100-user.pdf", "user", "1.1", "2024-02-01", 1800000),
            _manual("Maintenance Guide", "/manuals/hs100-maintenance.pdf", "maintenance", "1.0", "2024-01-20", 1500000),
        ],
        "search_keywords": ["high-speed door", "roll-up door", "industrial door", "rapid door"],
    },
    {
        "product_type": "gate",
        "name": "Sliding Gate SG200",
        "model": "SG200",
        "sku": "SG200-001",
        "brand_id": "came",
        "brand": BRANDS["came"],
        "category": "Gates",
        "description": "Heavy-duty sliding gate for industrial and commercial applications",
        "short_description": "Industrial sliding gate with advanced security features",
        "gate_type": "sliding",
        "operation_type": "automatic",
        "materials": ["Steel", "Aluminum"],
        "safety_features": ["Photocells", "Safety Edges", "Warning Light"],
        "max_dimensions": {"height": 2500, "width": 12000, "unit": "mm"},
        "opening_speed": 0.3,
        "cycles_per_day": 500,
        "max_weight": 2000,
        "specifications": [
            {"key": "Max Gate Weight", "value": 2000, "unit": "kg"},
            {"key": "Opening Speed", "value": 0.3, "unit": "m/s"},
        ],
        "features": ["Anti-crushing system", "Manual release mechanism", "Integrated control panel"],
        "applications": ["Industrial sites", "Commercial properties", "Logistics centers"],
        "images": {
            "main": "/images/products/sg200-main.jpg",
            "gallery": [f"/images/products/sg200-gallery{i}.jpg" for i in range(1, 3)],
        },
        "manuals": [
            _manual("Installation Manual", "/manuals/sg200-install.pdf", "installation", "1.0", "2024-01-10", 3200000),
            _manual("User Guide", "/manuals/sg200-user.pdf", "user", "1.0", "2024-01-10", 1500000),
        ],
        "search_keywords": ["sliding gate", "industrial gate", "automatic gate"],
    },
    {
        "product_type": "motor",
        "name": "Industrial Door Motor M300",
        "model": "M300",
        "sku": "M300-001",
        "brand_id": "nice",
        "brand": BRANDS["nice"],
        "category": "Motors",
        "description": "Powerful motor for industrial sectional doors and rolling shutters",
        "short_description": "Industrial door motor with advanced control features",
        "motor_type": "sectional",
        "power_supply": "230V AC",
        "power_rating": 750,
        "torque": 70,
        "speed_rpm": 24,
        "duty_cycle": "60%",
        "ip_rating": "IP54",
        "temperature_range": {"min": -20, "max": 55, "unit": "C"},
        "max_weight": 400,
        "specifications": [
            {"key": "Power Rating", "value": 750, "unit": "W"},
            {"key": "Torque", "value": 70, "unit": "Nm"},
        ],
        "features": ["Integrated limit switches", "Thermal protection", "Emergency manual operation"],
        "applications": ["Sectional doors", "Rolling shutters", "Industrial doors"],
        "images": {
            "main": "/images/products/m300-main.jpg",
            "gallery": [f"/images/products/m300-gallery{i}.jpg" for i in range(1, 3)],
        },
        "manuals": [
            _manual("Installation & Programming Guide", "/manuals/m300-install.pdf", "installation", "2.1", "2024-02-15", 4200000),
            _manual("Technical Manual", "/manuals/m300-technical.pdf", "technical", "2.0", "2024-02-01", 5500000),
        ],
        "search_keywords": ["door motor", "industrial motor", "sectional door operator"],
    },
    {
        "product_type": "control_system",
        "name": "Smart Door Controller CS100",
        "model": "CS100",
        "sku": "CS100-001",
        "brand_id": "bft",
        "brand": BRANDS["bft"],
        "category": "Control Systems",
        "description": "Advanced control system for industrial doors and gates",
        "short_description": "Smart controller with mobile connectivity",
        "system_type": "smart",
        "compatibility": ["Sectional Doors", "Rolling Shutters", "High-Speed Doors"],
        "connectivity": ["Bluetooth", "WiFi", "RS485"],
        "input_voltage": "230V AC",
        "output_voltage": "24V DC",
        "ip_rating": "IP65",
        "interfaces": ["LCD Display", "Mobile App"],
        "programming_methods": ["Mobile App", "Manual Programming", "PC Software"],
        "safety_inputs": ["Photocells", "Safety Edge", "Emergency Stop"],
        "specifications": [
            {"key": "Input Voltage", "value": "230V AC"},
            {"key": "Output Voltage", "value": "24V DC"},
        ],
        "features": ["Mobile app control", "Remote diagnostics", "Usage statistics"],
        "applications": ["Industrial doors", "Commercial gates", "Access control systems"],
        "images": {
            "main": "/images/products/cs100-main.jpg",
            "gallery": [f"/images/products/cs100-gallery{i}.jpg" for i in range(1, 3)],
        },
        "manuals": [
            _manual("Installation & Setup Guide", "/manuals/cs100-install.pdf", "installation", "1.2", "2024-02-20", 3800000),
            _manual("User Manual", "/manuals/cs100-user.pdf", "user", "1.1", "2024-02-15", 2200000),
            _manual("Programming Reference", "/manuals/cs100-programming.pdf", "technical", "1.0", "2024-02-01", 1800000),
        ],
        "search_keywords": ["door controller", "smart controller", "gate control system"],
    },
]


def build_product(data: dict) -> Product:
    """Validace přes stejná schémata jako POST /api/products."""
    validated = CREATE_SCHEMAS[data["product_type"]].model_validate(data)
    values = validated.model_dump(mode="json", exclude={"product_type"})
    return PRODUCT_MODELS[validated.product_type](**values)


def clear_products(db) -> int:
    # přes ORM, aby se smazaly i řádky podtypů a komentáře
    products: List[Product] = db.query(Product).all()
    for product in products:
        db.delete(product)
    db.flush()
    return len(products)


def ensure_admin(db, email: str, password: str) -> None:
    user = find_user_by_email(db, email)
    if user:
        user.role = "admin"
        print(f"[INFO] Uživatel {email} už existuje, nastavuju roli admin.")
        return

    username = email.split("@", 1)[0][:20] or "admin"
    db.add(
        User(
            email=email.strip().lower(),
            username=username,
            password_hash=hash_password(password),
            first_name="Admin",
            last_name="DoorMate",
            role="admin",
        )
    )
    print(f"[OK] Vytvořen admin {email} (username={username}).")


def main():
    parser = argparse.ArgumentParser(description="Naplní DB ukázkovými produkty.")
    parser.add_argument("--keep", action="store_true", help="Nemazat existující produkty.")
    parser.add_argument("--admin-email", help="Založí (nebo povýší) admin účet.")
    parser.add_argument("--admin-password", help="Heslo pro nově zakládaný admin účet.")
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        if not args.keep:
            removed = clear_products(db)
            print(f"[INFO] Smazáno {removed} existujících produktů.")

        for data in SAMPLE_PRODUCTS:
            try:
                db.add(build_product(data))
            except ValidationError as exc:
                print(f"[ERR] {data['sku']}: {exc}")
                raise
            print(f"[OK] {data['product_type']:<15} {data['sku']}  {data['name']}")

        if args.admin_email:
            if not args.admin_password:
                parser.error("--admin-password je povinné spolu s --admin-email")
            ensure_admin(db, args.admin_email, args.admin_password)

        db.commit()
        print("[OK] Data seeded successfully.")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
