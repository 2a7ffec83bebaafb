#!/usr/bin/env python3
"""
Vygeneruje ukázkové PDF manuály do PUBLIC_DIR/manuals (PyMuPDF).

Každá kapitola manuálu jde na vlastní stránku, aby asistent mohl citovat
konkrétní stránky.
"""
import argparse
from pathlib import Path
from typing import List, Tuple

import fitz

import config

PAGE_RECT = fitz.Rect(50, 90, 545, 800)

HS100_INSTALL = [
    ("1. Safety Precautions", """- Read all instructions before beginning installation
- Use appropriate personal protective equipment
- Follow local building codes and regulations"""),
    ("2. Tools Required", """- Power drill and bits
- Level
- Measuring tape
- Socket set
- Allen keys"""),
    ("3. Installation Steps", """3.1 Prepare the opening
3.2 Mount the side guides
3.3 Install the header assembly
3.4 Connect power supply
3.5 Install safety devices
3.6 Program limits and features"""),
    ("4. Testing and Commissioning", """- Check all safety devices
- Test emergency operation
- Verify proper opening and closing speeds
- Train end users on operation"""),
]

HS100_USER = [
    ("1. Daily Operation", """- Opening and closing procedures
- Emergency stop usage
- Manual operation in case of power failure"""),
    ("2. Safety Features", """- Light curtain operation
- Safety edge function
- Emergency stop locations"""),
    ("3. Maintenance", """- Daily checks
- Weekly inspections
- Monthly maintenance tasks"""),
    ("4. Troubleshooting", """- Common issues and solutions
- When to call for service
- Error code reference"""),
]

HS100_MAINTENANCE = [
    ("1. Maintenance Schedule", """- Daily: visual check of curtain and guides
- Monthly: clean photocells and light curtain
- Every 6 months: check belt tension and brake"""),
    ("2. Curtain Reinsertion", """- Stop the door and isolate the power supply
- Guide the curtain back into the side guides
- Run one slow opening cycle to verify"""),
    ("3. Spare Parts", """- Safety edge profile
- Drive belt
- Frequency inverter fan"""),
]


def generic_manual(name: str, kind: str) -> List[Tuple[str, str]]:
    return [
        ("1. Introduction", f"This {kind} manual covers the {name}. Keep it near the installation."),
        ("2. Safety", """- Disconnect power before any work on the unit
- Only trained technicians may open the control housing
- Test all safety inputs after every intervention"""),
        ("3. Procedure", f"Follow the {kind} steps in order and record the result in the service log."),
    ]


SAMPLE_MANUALS = {
    "hs100-install.pdf": ("High-Speed Door HS100 Installation Manual", HS100_INSTALL),
    "hs100-user.pdf": ("High-Speed Door HS100 User Guide", HS100_USER),
    "hs100-maintenance.pdf": ("High-Speed Door HS100 Maintenance Guide", HS100_MAINTENANCE),
    "sg200-install.pdf": ("Sliding Gate SG200 Installation Manual", generic_manual("Sliding Gate SG200", "installation")),
    "sg200-user.pdf": ("Sliding Gate SG200 User Guide", generic_manual("Sliding Gate SG200", "user")),
    "m300-install.pdf": ("Motor M300 Installation & Programming Guide", generic_manual("Industrial Door Motor M300", "installation")),
    "m300-technical.pdf": ("Motor M300 Technical Manual", generic_manual("Industrial Door Motor M300", "technical")),
    "cs100-install.pdf": ("Controller CS100 Installation & Setup Guide", generic_manual("Smart Door Controller CS100", "installation")),
    "cs100-user.pdf": ("Controller CS100 User Manual", generic_manual("Smart Door Controller CS100", "user")),
    "cs100-programming.pdf": ("Controller CS100 Programming Reference", generic_manual("Smart Door Controller CS100", "programming")),
}


def create_pdf(title: str, sections: List[Tuple[str, str]], output_path: Path) -> None:
    doc = fitz.open()
    try:
        for heading, body in sections:
            page = doc.new_page()
            page.insert_text((50, 50), title, fontsize=16)
            page.insert_text((50, 75), heading, fontsize=13)
            page.insert_textbox(PAGE_RECT, body, fontsize=11)
        doc.set_metadata({"title": title, "producer": "DoorMate sample manuals"})
        doc.save(str(output_path))
    finally:
        doc.close()


def main():
    parser = argparse.ArgumentParser(description="Vytvoří ukázkové PDF manuály.")
    parser.add_argument("--out", default=str(config.MANUALS_DIR), help="Cílový adresář (default: %(default)s)")
    parser.add_argument("--force", action="store_true", help="Přepsat existující soubory.")
    args = parser.parse_args()

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    for filename, (title, sections) in SAMPLE_MANUALS.items():
        target = out_dir / filename
        if target.exists() and not args.force:
            print(f"[INFO] {filename} už existuje, přeskakuju.")
            continue
        create_pdf(title, sections, target)
        print(f"[OK] Created {filename} ({len(sections)} stran)")


if __name__ == "__main__":
    main()
