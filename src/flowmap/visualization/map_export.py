"""
Leaflet HTML export of the land-survey overlays.

``LeafletMapDocument`` is an overlay surface: hand it to an
``OverlayReconciler`` and it collects the drawables, then ``write()`` renders
a self-contained HTML page (Leaflet from unpkg, satellite-free OSM tiles)
you can open in a browser.

Usage::

    from src.flowmap.visualization import LeafletMapDocument, OverlayReconciler

    doc = LeafletMapDocument(center=bounds.center, zoom=15, bounds=bounds)
    OverlayReconciler(doc).reconcile(result.primitives())
    doc.write("water_flow.html")
"""

import html
import itertools
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.flowmap.contours import ContourLine, ElevationMarker
from src.flowmap.geo import Bounds, LatLng
from src.flowmap.visualizer import DepthLabel, FlowLine

logger = logging.getLogger(__name__)


def _to_feature(primitive: Any) -> Dict[str, Any]:
    """Serialize a primitive into the JSON shape the page script draws."""
    if isinstance(primitive, FlowLine):
        return {
            "type": "flow",
            "path": [[primitive.start.lat, primitive.start.lng], [primitive.end.lat, primitive.end.lng]],
            "color": primitive.color,
            "weight": primitive.weight,
            "opacity": primitive.opacity,
            "arrow": primitive.arrow_scale,
        }
    if isinstance(primitive, DepthLabel):
        return {
            "type": "label",
            "position": [primitive.position.lat, primitive.position.lng],
            "text": primitive.text,
            "title": primitive.title,
            "color": primitive.color,
        }
    if isinstance(primitive, ContourLine):
        mid = primitive.label_position
        return {
            "type": "contour",
            "path": [[p.lat, p.lng] for p in primitive.path],
            "color": primitive.color,
            "weight": primitive.weight,
            "opacity": primitive.opacity,
            "label": primitive.label,
            "labelPosition": [mid.lat, mid.lng],
        }
    if isinstance(primitive, ElevationMarker):
        return {
            "type": "marker",
            "position": [primitive.position.lat, primitive.position.lng],
            "text": primitive.text,
            "color": primitive.color,
        }
    raise TypeError(f"Unsupported primitive type: {type(primitive).__name__}")


class LeafletMapDocument:
    """
    Overlay surface that renders to a standalone Leaflet HTML page.

    Attributes:
        center: Initial map centre
        zoom: Initial zoom level
        bounds: Optional rectangle to fit and outline
        title: Page heading
    """

    def __init__(
        self,
        center: LatLng,
        zoom: int = 15,
        bounds: Optional[Bounds] = None,
        title: str = "Water Flow",
    ):
        self.center = center
        self.zoom = zoom
        self.bounds = bounds
        self.title = title
        self._features: Dict[int, Dict[str, Any]] = {}
        self._handles = itertools.count(1)

    def add(self, primitive: Any) -> int:
        handle = next(self._handles)
        self._features[handle] = _to_feature(primitive)
        return handle

    def remove(self, handle: int) -> None:
        self._features.pop(handle, None)

    @property
    def features(self) -> List[Dict[str, Any]]:
        return list(self._features.values())

    def render(self) -> str:
        """Build the HTML page for the current set of drawables."""
        title = html.escape(self.title)
        # Keep feature text from closing the script element
        features_js = json.dumps(self.features).replace("</", "<\\/")
        bounds_js = "null"
        if self.bounds is not None:
            sw, ne = self.bounds.south_west, self.bounds.north_east
            bounds_js = json.dumps([[sw.lat, sw.lng], [ne.lat, ne.lng]])

        return f"""<!DOCTYPE html>
<html>
<head>
    <title>{title}</title>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css" />
    <script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
    <script src="https://unpkg.com/leaflet-polylinedecorator@1.6.0/dist/leaflet.polylineDecorator.js"></script>
    <style>
        #map {{ height: 600px; width: 100%; }}
        .map-label {{ background: white; border: 1px solid; border-radius: 3px;
                      font: 10px Arial; padding: 1px 4px; white-space: nowrap; }}
    </style>
</head>
<body>
    <h1>{title}</h1>
    <div id="map"></div>
    <script>
        var map = L.map('map').setView([{self.center.lat}, {self.center.lng}], {self.zoom});
        L.tileLayer('https://{{s}}.tile.openstreetmap.org/{{z}}/{{x}}/{{y}}.png', {{
            attribution: '© OpenStreetMap contributors'
        }}).addTo(map);

        var bounds = {bounds_js};
        if (bounds) {{
            L.rectangle(bounds, {{color: "#ff7800", weight: 1, fill: false}}).addTo(map);
            map.fitBounds(bounds);
        }}

        function label(position, text, color, title) {{
            return L.marker(position, {{
                title: title || text,
                icon: L.divIcon({{
                    className: '',
                    html: '<span class="map-label" style="color:' + color + ';border-color:' + color + '">' + text + '</span>'
                }})
            }});
        }}

        var features = {features_js};
        features.forEach(function (f) {{
            if (f.type === 'flow') {{
                var line = L.polyline(f.path, {{color: f.color, weight: f.weight, opacity: f.opacity}}).addTo(map);
                L.polylineDecorator(line, {{patterns: [{{offset: '100%', repeat: 0,
                    symbol: L.Symbol.arrowHead({{pixelSize: f.arrow * 3, pathOptions: {{color: f.color, fillOpacity: 1, weight: 1}}}})}}]}}).addTo(map);
            }} else if (f.type === 'contour') {{
                L.polyline(f.path, {{color: f.color, weight: f.weight, opacity: f.opacity}}).addTo(map);
                label(f.labelPosition, f.label, f.color).addTo(map);
            }} else if (f.type === 'label') {{
                label(f.position, f.text, f.color, f.title).addTo(map);
            }} else if (f.type === 'marker') {{
                L.circleMarker(f.position, {{radius: 6, color: 'white', weight: 1, fillColor: f.color, fillOpacity: 1}})
                    .bindTooltip(f.text).addTo(map);
            }}
        }});
    </script>
</body>
</html>"""

    def write(self, output_file) -> Path:
        """Render and save the page, returning its path."""
        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.render())
        logger.info(f"Created map visualization with {len(self._features)} overlays: {output_path}")
        return output_path
