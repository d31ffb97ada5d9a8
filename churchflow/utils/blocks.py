import copy
import json
import uuid

BLOCK_DEFAULTS = {
    "hero": {
        "title": "Welcome to Our Church",
        "subtitle": "Join us for worship",
        "buttonText": "Learn More",
        "buttonLink": "#",
        "backgroundImage": "",
    },
    "heading": {"text": "Section Title", "level": "h2"},
    "text": {"html": "<p>Enter your content here...</p>"},
    "image": {"url": "", "alt": "", "caption": ""},
    "video": {"url": "", "autoplay": False},
    "events": {"limit": 3, "showPast": False},
    "donation": {
        "title": "Support Our Ministry",
        "buttonText": "Give Now",
        "fundId": "",
    },
    "staff": {"showAll": True, "limit": 6},
    "map": {"address": "", "zoom": 15},
    "columns": {"columns": 2, "content": [[], []]},
}

BLOCK_TYPES = tuple(BLOCK_DEFAULTS)


def default_content(block_type: str) -> dict:
    if block_type not in BLOCK_DEFAULTS:
        raise ValueError(f"Unknown block type: {block_type}")
    return copy.deepcopy(BLOCK_DEFAULTS[block_type])


class PageEditor:
    """
    Ordered list of content blocks for one page.

    Blocks are plain dicts of the form {"id", "type", "content"} so the
    list serializes straight into WebPage.content.
    """

    def __init__(self, blocks: list[dict] | None = None):
        self.blocks = list(blocks or [])

    @classmethod
    def from_json(cls, raw: str | None) -> "PageEditor":
        return cls(json.loads(raw) if raw else [])

    def to_json(self) -> str:
        return json.dumps(self.blocks)

    def _index(self, block_id: str) -> int:
        for i, block in enumerate(self.blocks):
            if block["id"] == block_id:
                return i
        raise KeyError(block_id)

    def add(self, block_type: str) -> dict:
        block = {
            "id": str(uuid.uuid4()),
            "type": block_type,
            "content": default_content(block_type),
        }
        self.blocks.append(block)
        return block

    def update(self, block_id: str, content: dict) -> dict:
        block = self.blocks[self._index(block_id)]
        block["content"] = {**block["content"], **content}
        return block

    def remove(self, block_id: str) -> None:
        del self.blocks[self._index(block_id)]

    def move(self, block_id: str, direction: str) -> None:
        """Swaps a block with its neighbour; a no-op at either end."""
        if direction not in ("up", "down"):
            raise ValueError(f"Unknown direction: {direction}")
        index = self._index(block_id)
        target = index - 1 if direction == "up" else index + 1
        if target < 0 or target >= len(self.blocks):
            return
        self.blocks[index], self.blocks[target] = self.blocks[target], self.blocks[index]
