from __future__ import annotations

import logging
import os
from pathlib import Path

CONFIG_DIR = Path(__file__).resolve().parent

# MediaWiki endpoint + polite identity
WIKI_API = os.environ.get("WIKIFACTS_API", "https://oldschool.runescape.wiki/api.php")
WIKI_BASE = os.environ.get("WIKIFACTS_WIKI_BASE", "https://oldschool.runescape.wiki/w/")
USER_AGENT = os.environ.get("WIKIFACTS_USER_AGENT", "wikifacts/0.1 (personal project)")

# HTTP cache (requests_cache, sqlite backend). 30 days.
HTTP_CACHE_PATH = os.environ.get("WIKIFACTS_HTTP_CACHE", "data/cache/http_cache")
HTTP_CACHE_EXPIRE = int(os.environ.get("WIKIFACTS_HTTP_CACHE_EXPIRE", 60 * 60 * 24 * 30))

# Local mirror
CACHE_DIR_PAGES = os.environ.get("WIKIFACTS_PAGES_DIR", "data/cache/pages")
CACHE_DIR_LISTS = os.environ.get("WIKIFACTS_LISTS_DIR", "data/cache/lists")
PAGES_INDEX_PATH = os.environ.get("WIKIFACTS_PAGES_INDEX", "data/cache/pages_index.jsonl")

# Fact graph
KG_BASE = os.environ.get("WIKIFACTS_KG_BASE", "http://localhost:5000")
FACTS_PATH = os.environ.get("WIKIFACTS_FACTS", "data/kg/facts.ttl")
SHACL_REPORT_PATH = os.environ.get("WIKIFACTS_SHACL_REPORT", "data/kg/shacl_report.txt")

# Lookup tables
ENTITY_FIELDS_PATH = os.environ.get("WIKIFACTS_ENTITY_FIELDS", str(CONFIG_DIR / "entity_fields.json"))
RECIPE_GRAPH_PATH = os.environ.get("WIKIFACTS_RECIPE_GRAPH", str(CONFIG_DIR / "recipe_graph.json"))
FACT_SHAPES_PATH = os.environ.get("WIKIFACTS_FACT_SHAPES", str(CONFIG_DIR / "fact_shapes.ttl"))

LOG_LEVEL = os.environ.get("WIKIFACTS_LOG_LEVEL", "INFO")


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
