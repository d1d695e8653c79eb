"""
Seed Dataset Loading

The seed is the AppData that ships with the build. A fresh install starts
from it, and a build carrying a higher seed version replaces older local
data (see ReconciliationStore.read).

It lives in initial_data.py as a plain Python literal so that the
"regenerate seed from current data" workflow is just: export, replace the
file, rebuild.
"""

import json
import pprint
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

from moneys_wisdom.data.initial_data import INITIAL_DATA
from moneys_wisdom.models.ledger import AppData, Percentages
from moneys_wisdom.validation.normalizer import normalize_app_data


def load_seed(
    path: Optional[Path] = None,
    default_percentages: Optional[Percentages] = None,
) -> AppData:
    """
    Load the seed dataset.

    Args:
        path: Optional JSON file overriding the bundled literal
              (ignored if it does not exist)
        default_percentages: Split used when the seed has none

    Raises:
        MalformedImport: If the seed does not normalize; a broken seed is
                         a build error, not something to paper over.
    """
    if path is not None and path.exists():
        raw = json.loads(path.read_text(encoding="utf-8"), parse_float=Decimal)
    else:
        raw = INITIAL_DATA
    return normalize_app_data(raw, default_percentages)


def render_seed_module(data: AppData, exported_at: Optional[datetime] = None) -> str:
    """
    Render AppData as the source of initial_data.py.

    Same content and shape as a JSON backup, written as a Python literal.
    """
    exported_at = exported_at or datetime.now()
    literal = pprint.pformat(data.to_wire(), indent=4, width=88, sort_dicts=False)
    return (
        '"""\n'
        "Bundled seed dataset (master data file).\n"
        "\n"
        'Regenerate from the Data page ("Export seed module") and replace this file\n'
        "to ship the current data with the next build.\n"
        f"Exported: {exported_at:%Y-%m-%d %H:%M:%S}\n"
        '"""\n'
        "\n"
        f"INITIAL_DATA = {literal}\n"
    )
