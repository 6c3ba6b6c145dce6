"""CSV import pipeline helpers."""

from __future__ import annotations

import pathlib

import yaml

SEED_CAMPAIGNS_PATH = pathlib.Path(__file__).with_name("campaigns.yml")


def load_seed_campaigns(path: pathlib.Path = SEED_CAMPAIGNS_PATH) -> list[dict[str, object]]:
    data = yaml.safe_load(path.read_text()) or []
    campaigns = []
    for item in data:
        if not item.get("name"):
            raise ValueError(f"Seed campaign without a name in {path}: {item!r}")
        campaigns.append(
            {
                "name": str(item["name"]).strip(),
                "platform": item.get("platform"),
                "country": item.get("country"),
                "budget": item.get("budget", 0),
                "description": item.get("description"),
            }
        )
    return campaigns
