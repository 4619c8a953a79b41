# trace_analyzer/analyzer/resources.py - Resource typing and grouping
"""
Resource type inference from URLs, grouping by type and size based
optimization suggestions.
"""

from collections import OrderedDict
from typing import Dict, List, Optional, Sequence
from urllib.parse import urlparse
import posixpath


EXTENSION_TYPES = {
    'image': ('jpg', 'jpeg', 'png', 'gif', 'webp', 'svg', 'ico', 'avif'),
    'script': ('js', 'mjs', 'jsx'),
    'style': ('css', 'scss', 'less'),
    'font': ('woff', 'woff2', 'ttf', 'otf', 'eot'),
    'document': ('html', 'htm', 'xhtml', 'php', 'asp', 'aspx', 'jsp'),
    'media': ('mp4', 'webm', 'ogg', 'mp3', 'wav'),
    'data': ('json', 'xml', 'csv'),
}

_TYPE_BY_EXTENSION = {ext: rtype for rtype, exts in EXTENSION_TYPES.items() for ext in exts}

RESOURCES_PER_TYPE_SAMPLE = 5

LARGE_IMAGES_BYTES = 1_000_000
LARGE_SCRIPTS_BYTES = 500_000
LARGE_STYLES_BYTES = 100_000
MAX_FONT_FILES = 3


def url_extension(url: Optional[str]) -> str:
    """Lower-cased file extension of the URL path, '' when there is none"""
    if not url:
        return ''
    path = urlparse(url).path
    _, ext = posixpath.splitext(posixpath.basename(path))
    return ext[1:].lower()


def determine_resource_type(url: Optional[str]) -> str:
    """
    Infer a resource type from its URL extension.

    Args:
        url: Resource URL

    Returns:
        One of image, script, style, font, document, media, data or other
    """
    return _TYPE_BY_EXTENSION.get(url_extension(url), 'other')


def group_resources_by_type(resources: Sequence[Dict]) -> List[Dict]:
    """
    Group resources by type.

    Args:
        resources: Resource dictionaries with ``type`` and ``size``

    Returns:
        Groups sorted by total size, largest first
    """
    groups: Dict[str, List[Dict]] = OrderedDict()
    for resource in resources:
        groups.setdefault(resource.get('type') or 'other', []).append(resource)

    result = []
    for rtype, members in groups.items():
        total = sum(r.get('size') or 0 for r in members)
        result.append({
            'type': rtype,
            'count': len(members),
            'totalSize': total,
            'averageSize': total / len(members),
            'resources': members[:RESOURCES_PER_TYPE_SAMPLE],
        })

    result.sort(key=lambda g: g['totalSize'], reverse=True)
    return result


def generate_optimization_suggestions(groups: Sequence[Dict]) -> List[Dict]:
    """
    Suggest optimizations from per-type totals.

    Args:
        groups: Output of ``group_resources_by_type``

    Returns:
        List of suggestion dictionaries
    """
    by_type = {g['type']: g for g in groups}
    suggestions = []

    images = by_type.get('image')
    if images and images['totalSize'] > LARGE_IMAGES_BYTES:
        suggestions.append({
            'type': 'image_optimization',
            'description': f"Large images detected ({images['totalSize'] / 1_000_000:.2f}MB total)",
            'recommendation': (
                "Consider optimizing images using WebP format, responsive images, "
                "and proper compression"
            ),
        })

    scripts = by_type.get('script')
    if scripts and scripts['totalSize'] > LARGE_SCRIPTS_BYTES:
        suggestions.append({
            'type': 'script_optimization',
            'description': f"Large scripts detected ({scripts['totalSize'] / 1_000_000:.2f}MB total)",
            'recommendation': (
                "Consider code splitting, tree shaking, and minification "
                "to reduce JavaScript size"
            ),
        })

    styles = by_type.get('style')
    if styles and styles['totalSize'] > LARGE_STYLES_BYTES:
        suggestions.append({
            'type': 'style_optimization',
            'description': f"Large stylesheets detected ({styles['totalSize'] / 1000:.2f}KB total)",
            'recommendation': "Consider using CSS optimization, removing unused styles, and minification",
        })

    fonts = by_type.get('font')
    if fonts and fonts['count'] > MAX_FONT_FILES:
        suggestions.append({
            'type': 'font_optimization',
            'description': f"Multiple font files detected ({fonts['count']} files)",
            'recommendation': "Consider using system fonts or limiting font weights and subsets",
        })

    return suggestions
