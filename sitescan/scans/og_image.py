import re
from urllib.parse import urljoin

# property/name before content, then content before property
OG_PATTERNS = (
    re.compile(r"<meta\s+property=[\"']og:image[\"']\s+content=[\"']([^\"']+)[\"']", re.I),
    re.compile(r"<meta\s+content=[\"']([^\"']+)[\"']\s+property=[\"']og:image[\"']", re.I),
    re.compile(r"<meta\s+name=[\"']og:image[\"']\s+content=[\"']([^\"']+)[\"']", re.I),
    re.compile(r"<meta[^>]*?og:image[^>]*?content\s*=\s*[\"']([^\"']+)[\"']", re.I),
    re.compile(r"<meta[^>]*?content\s*=\s*[\"']([^\"']+)[\"'][^>]*?og:image", re.I),
)


def extract_og_image(html: str, base_url: str) -> str | None:
    for pattern in OG_PATTERNS:
        m = pattern.search(html or "")
        if not m:
            continue
        image = m.group(1).strip()
        if image.startswith(("http://", "https://")):
            return image
        if image.startswith(("/", "./", "../")):
            return urljoin(base_url, image)
        return None
    return None
