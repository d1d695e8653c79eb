"""Bundled seed dataset."""

from moneys_wisdom.data.seed import load_seed, render_seed_module

__all__ = ["load_seed", "render_seed_module"]
