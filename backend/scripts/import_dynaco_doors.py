#!/usr/bin/env python3
"""
Import Dynaco dveří z JSON souboru (seznam objektů) přes společnou šablonu.

Existující Dynaco dveře se nejdřív smažou, pak se každý záznam zvaliduje
a vloží zvlášť; na konci je přehled úspěchů podle modelu.

    python -m scripts.import_dynaco_doors data/dynaco_doors.json
"""
import argparse
import json
from pathlib import Path
from typing import Dict, List, Tuple

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from database import Base, SessionLocal, engine
from errors import field_messages
from models import Door
from schemas import DoorCreate

DYNACO_TEMPLATE = {
    "product_type": "door",
    "brand_id": "dynaco",
    "brand": {"id": "dynaco", "name": "Dynaco", "website": "https://www.dynacodoor.com"},
    "category": "High-Speed Doors",
    "door_type": "high-speed",
    "operation_type": "automatic",
    "materials": ["Galvanised steel", "Reinforced PVC"],
    "safety_features": [
        "Light curtain",
        "Safety edge",
        "Flexible curtain without rigid elements",
        "Self-reinserting curtain",
    ],
    "specifications": [
        {"key": "Technology", "value": "Gravity"},
        {"key": "Curtain", "value": "Flexible, self-reinserting"},
    ],
    "certifications": ["EN13241-1", "EN 12424"],
    "status": "active",
}


def build_door(data: Dict) -> Dict:
    door = {**DYNACO_TEMPLATE, **data}
    keywords = [
        data.get("name"),
        data.get("model"),
        data.get("sku"),
        DYNACO_TEMPLATE["brand"]["name"],
        DYNACO_TEMPLATE["category"],
        *(data.get("features") or []),
        *(data.get("applications") or []),
    ]
    door["search_keywords"] = [k for k in keywords if k]
    return door


def clear_dynaco_doors(db) -> int:
    doors = db.query(Door).filter(Door.brand_id == DYNACO_TEMPLATE["brand_id"]).all()
    for door in doors:
        db.delete(door)
    db.flush()
    return len(doors)


def import_doors(db, items: List[Dict]) -> List[Tuple[str, bool, str]]:
    results = []
    for data in items:
        payload = build_door(data)
        model = payload.get("model") or "?"
        try:
            values = DoorCreate.model_validate(payload).model_dump(mode="json", exclude={"product_type"})
        except ValidationError as e:
            errors = field_messages(e.errors())
            results.append((model, False, "; ".join(f"{k}: {v}" for k, v in errors.items())))
            continue

        # savepoint, aby jeden duplicitní SKU neshodil celý import
        try:
            with db.begin_nested():
                db.add(Door(**values))
        except IntegrityError as e:
            results.append((model, False, str(e.orig)))
            continue
        results.append((model, True, ""))
    return results


def main():
    parser = argparse.ArgumentParser(description="Importuje Dynaco dveře z JSON souboru.")
    parser.add_argument("json_file", help="JSON se seznamem dveří")
    args = parser.parse_args()

    items = json.loads(Path(args.json_file).read_text(encoding="utf-8"))
    if not isinstance(items, list):
        print("[ERR] JSON musí obsahovat seznam objektů.")
        return

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        print("[INFO] Starting Dynaco doors import...")
        removed = clear_dynaco_doors(db)
        print(f"[INFO] Smazáno {removed} existujících Dynaco dveří.")

        results = import_doors(db, items)
        db.commit()
    finally:
        db.close()

    print("\nImport Results:")
    for model, ok, error in results:
        if ok:
            print(f"[OK]  {model} imported successfully")
        else:
            print(f"[ERR] {model} failed: {error}")

    successful = sum(1 for _, ok, _ in results if ok)
    print(f"\nImport completed: {successful}/{len(results)} doors imported successfully")


if __name__ == "__main__":
    main()
