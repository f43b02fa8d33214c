"""
ECharts options builder for the adventure canvas.

Converts a Document into an ECharts option dict: story nodes are placed at
their stored positions (no layout is computed), each parent -> child edge is
labelled with its decision text, and custom connections and tags are drawn
as free-floating graphic elements.
"""

import html
from typing import Any, Dict, List, Optional

from adventure_planner.graph_store import GraphStore
from adventure_planner.models import Document

# Event keys we request from ECharts click events
REQUESTED_EVENT_KEYS = ['componentType', 'name', 'seriesType', 'value']

BACKGROUND_COLOR = '#1e1b2e'
NODE_COLOR = '#3b3355'
ROOT_BORDER_COLOR = '#ffd700'
SELECTED_BORDER_COLOR = '#7fdbff'
EDGE_COLOR = '#9d8cc4'
CONNECTION_COLOR = '#6b4c8c'
TAG_COLOR = '#f0c674'

NODE_WIDTH = 160
NODE_HEIGHT = 60


def _tooltip_html(text: str) -> str:
    """HTML-escape `text` and neutralise ECharts template braces."""
    return html.escape(text).replace('{', '&#123;').replace('}', '&#125;')


def _node_entries(G, selected_id: Optional[str]) -> List[Dict[str, Any]]:
    entries = []
    for nid, attrs in G.nodes(data=True):
        item_style = {'color': NODE_COLOR, 'borderColor': 'transparent', 'borderWidth': 0}
        if attrs.get('is_root'):
            item_style.update({'borderColor': ROOT_BORDER_COLOR, 'borderWidth': 3})
        if nid == selected_id:
            item_style.update({'borderColor': SELECTED_BORDER_COLOR, 'borderWidth': 4})

        title = attrs.get('title') or nid
        description = attrs.get('description', '')
        tooltip_text = _tooltip_html(title)
        if description:
            tooltip_text += f"<br/><span style='color:#999;font-size:11px'>{_tooltip_html(description)}</span>"

        # Labels show the item value through '{c}', so user text is never parsed as a template
        entries.append({
            'id': nid,
            'name': nid,
            'value': title,
            'x': attrs.get('x', 0.0),
            'y': attrs.get('y', 0.0),
            'symbol': 'roundRect',
            'symbolSize': [NODE_WIDTH, NODE_HEIGHT],
            'itemStyle': item_style,
            'label': {'show': True, 'formatter': '{c}', 'color': '#ffffff', 'fontSize': 13},
            'tooltip': {'formatter': tooltip_text},
        })
    return entries


def _edge_entries(G) -> List[Dict[str, Any]]:
    links = []
    for src, tgt, attrs in G.edges(data=True):
        links.append({
            'source': src,
            'target': tgt,
            'value': attrs.get('decision_text', ''),
            'lineStyle': {'color': EDGE_COLOR, 'width': 2, 'curveness': 0},
            'symbol': ['none', 'arrow'],
            'label': {'show': True, 'formatter': '{c}', 'color': '#dddddd'},
        })
    return links


def _overlay_graphics(document: Document) -> List[Dict[str, Any]]:
    graphics = []
    for i, connection in enumerate(document.connections):
        (x1, y1), (x2, y2) = connection.start, connection.end
        graphics.append({
            'type': 'line',
            'id': f'connection-{i}',
            'shape': {'x1': x1, 'y1': y1, 'x2': x2, 'y2': y2},
            'style': {'stroke': CONNECTION_COLOR, 'lineWidth': 2, 'lineDash': [10, 5]},
        })
    for i, tag in enumerate(document.tags):
        graphics.append({
            'type': 'text',
            'id': f'tag-{i}',
            'x': tag.x,
            'y': tag.y,
            'style': {'text': tag.text, 'fill': TAG_COLOR, 'font': '13px sans-serif'},
        })
    return graphics


def build_echart_options(document: Document, selected_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Build ECharts options for `document`.

    Args:
        document: The adventure to draw
        selected_id: Node to highlight, if any

    Returns:
        ECharts options dict ready for ui.echart()
    """
    G = GraphStore(document).to_networkx()

    return {
        'backgroundColor': BACKGROUND_COLOR,
        'tooltip': {},
        'animation': False,
        'graphic': _overlay_graphics(document),
        'series': [{
            'type': 'graph',
            'layout': 'none',
            'roam': True,
            'data': _node_entries(G, selected_id),
            'links': _edge_entries(G),
            'edgeSymbolSize': 8,
        }],
    }


def click_event_fields(event_args: Any) -> Dict[str, Any]:
    """
    Map the arguments of a chart click event onto REQUESTED_EVENT_KEYS.

    NiceGUI delivers the requested keys as a list in request order; a dict
    is passed through and a bare string is taken to be the clicked name.
    """
    if isinstance(event_args, dict):
        return event_args
    if isinstance(event_args, str):
        return {'name': event_args}
    if isinstance(event_args, (list, tuple)):
        return dict(zip(REQUESTED_EVENT_KEYS, event_args))
    return {}


def resolve_node_id_from_payload(payload: Dict[str, Any], graph: GraphStore) -> Optional[str]:
    """Return a node id from a normalized payload by validating against the graph store."""
    if not isinstance(payload, dict):
        return None
    component = payload.get('componentType')
    if component != 'series':
        return None

    node_id = payload.get('name')
    if not node_id:
        return None

    if node_id in graph:
        return node_id

    for node in graph.all_nodes():
        if node.title == node_id:
            return node.id
    return None
