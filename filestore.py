"""
Flat JSON list files backing the public portfolio, services and slideshow pages.

Each read-modify-write goes through `mutate`, which holds a per-file lock and
replaces the file atomically, so there is a single writer per file.
"""

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

import config

logger = logging.getLogger(__name__)

FILES = {
    "portfolio": "portfolio.json",
    "services": "services.json",
    "slideshow": "slideshow.json",
}

_locks: Dict[str, threading.Lock] = {name: threading.Lock() for name in FILES}


def path_for(name: str) -> str:
    return os.path.join(config.DATA_DIR, FILES[name])


def read_list(name: str) -> List:
    path = path_for(name)
    if not os.path.exists(path):
        return []
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_list(name: str, items: List) -> None:
    path = path_for(name)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=os.path.dirname(path), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(items, f, indent=2, default=str)
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


@contextmanager
def locked(name: str):
    with _locks[name]:
        yield


def mutate(name: str, fn: Callable[[List], List]) -> List:
    """Apply `fn` to the current list and persist whatever it returns."""
    with locked(name):
        items = fn(read_list(name))
        _write_list(name, items)
        return items


def next_id(items: List[dict]) -> int:
    ids = [i["id"] for i in items if isinstance(i.get("id"), int)]
    return max(ids, default=0) + 1


def same_id(a, b) -> bool:
    return str(a) == str(b)


def find_item(name: str, item_id) -> Optional[dict]:
    for item in read_list(name):
        if same_id(item.get("id"), item_id):
            return item
    return None


def add_item(name: str, data: dict) -> dict:
    created = {}

    def apply(items: List[dict]) -> List[dict]:
        created.update({**data, "id": next_id(items)})
        items.append(created)
        return items

    mutate(name, apply)
    return created


def update_item(name: str, item_id, data: dict) -> Optional[dict]:
    """Merge `data` into the item with `item_id`; None when there is no such item."""
    updated = {}

    def apply(items: List[dict]) -> List[dict]:
        for idx, item in enumerate(items):
            if same_id(item.get("id"), item_id):
                items[idx] = {**item, **data, "id": item.get("id")}
                updated.update(items[idx])
                break
        return items

    mutate(name, apply)
    return updated or None


def delete_item(name: str, item_id) -> bool:
    removed = []

    def apply(items: List[dict]) -> List[dict]:
        kept = [i for i in items if not same_id(i.get("id"), item_id)]
        removed.append(len(items) - len(kept))
        return kept

    mutate(name, apply)
    return removed[0] > 0


def append_slide(image) -> List:
    return mutate("slideshow", lambda items: items + [image])


def delete_slide(index: int) -> bool:
    found = []

    def apply(items: List) -> List:
        if 0 <= index < len(items):
            found.append(items.pop(index))
        return items

    mutate("slideshow", apply)
    return bool(found)


# Portfolio sync for projects

def portfolio_entry(project: dict) -> dict:
    images = [img.get("url") for img in project.get("images") or [] if img.get("url")]
    main_image = images[0] if images else project.get("main_image")
    client = project.get("client") or {}
    budget = project.get("budget")
    area = project.get("area")
    testimonials = []
    if client.get("testimonial"):
        testimonials.append({
            "rating": 5,
            "content": client["testimonial"],
            "name": client.get("name") or "Client",
            "role": "Client",
        })
    return {
        "id": str(project["_id"]) if "_id" in project else str(project["id"]),
        "title": project.get("title"),
        "description": project.get("description"),
        "longDescription": project.get("description"),
        "image": main_image,
        "mainImage": main_image,
        "images": images,
        "category": project.get("category"),
        "sequence": project.get("sequence") or 0,
        "area": f"{area} sq ft" if area else "N/A",
        "duration": project.get("duration") or "N/A",
        "location": project.get("location") or "N/A",
        "budget": f"₹{budget / 100000:.1f} Lakhs" if budget else "N/A",
        "features": project.get("services") or [],
        "testimonials": testimonials,
    }


def sync_project(project: dict) -> None:
    """Upsert the project's portfolio entry. Failures are logged, never raised."""
    entry = portfolio_entry(project)

    def apply(items: List[dict]) -> List[dict]:
        for idx, item in enumerate(items):
            if same_id(item.get("id"), entry["id"]):
                items[idx] = {**item, **entry}
                break
        else:
            items.append(entry)
        items.sort(key=lambda i: i.get("sequence") or 0)
        return items

    try:
        mutate("portfolio", apply)
        logger.info(f"Portfolio synced for project {entry['id']}")
    except Exception as e:
        logger.error(f"Error syncing portfolio for project {entry['id']}: {e}")


def remove_project(project_id: str) -> None:
    try:
        mutate("portfolio", lambda items: [i for i in items if not same_id(i.get("id"), project_id)])
        logger.info(f"Project {project_id} removed from portfolio")
    except Exception as e:
        logger.error(f"Error removing project {project_id} from portfolio: {e}")
