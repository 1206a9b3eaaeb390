"""Crée des rapports de démonstration (chargement et ventes) pour LaConsigne."""

import pandas as pd
from pathlib import Path

DATA_DIR = Path(__file__).parent / "data"
DATA_DIR.mkdir(exist_ok=True)

load = pd.DataFrame({
    "Consign": ["Z1C0801483", "Z1C0801999", "Z1C0801999", "Z1C0802468", "Z1C0803333"],
    "Variety": ["APPLE", "PEAR", "PEAR", "PLUM", "APPLE"],
    "Ctn Type": ["A15", "B10", "B10", "A15", "C12"],
    "# Ctns": [100, 60, 40, 80, 25],
})

sales = pd.DataFrame({
    "Supplier Ref": ["REF1483", "REF1999", "GRW2468", "REF5555 (Pre)", "DESTINATION: DURBAN", "REF7777"],
    "Received": [100, 100, 80, 12, None, 20],
    "Sold": [95, 80, 80, 12, None, 15],
    "Total Value": [500.25, 1000.50, 640.80, 48.00, None, 95.40],
})

with pd.ExcelWriter(DATA_DIR / "load.xlsx", engine="openpyxl") as writer:
    load.to_excel(writer, sheet_name="Load Report", index=False)
with pd.ExcelWriter(DATA_DIR / "sales.xlsx", engine="openpyxl") as writer:
    sales.to_excel(writer, sheet_name="Market Account", index=False)
print(f"Fichiers créés dans {DATA_DIR}")
