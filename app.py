"""
NiceGUI editor for Adventure Planner.

Renders the open adventure with ui.echart and wires toolbar, side panel and
keyboard shortcuts to the EditorSession. All model changes go through the
session; this file only decides which of them are undoable and redraws.
"""

import sys
from pathlib import Path

from dotenv import load_dotenv
from nicegui import ui

load_dotenv()

from adventure_planner.chart_builder import (
    REQUESTED_EVENT_KEYS,
    build_echart_options,
    click_event_fields,
    resolve_node_id_from_payload,
)
from adventure_planner.codec import FILE_EXTENSION, PersistenceError
from adventure_planner.config import add_recent_file, get_last_directory, get_port, get_recent_files
from adventure_planner.paths import ensure_documents_dir
from adventure_planner.session import EditorSession
from adventure_planner.undo import Change, ChangeKind


# Delay before the "saving" indicator is cleared
SAVE_INDICATOR_SECONDS = 0.2


def default_save_path(session: EditorSession) -> str:
    """Initial value for the save-as dialog."""
    if session.file_path is not None:
        return str(session.file_path)
    directory = get_last_directory() or str(ensure_documents_dir())
    return str(Path(directory) / session.suggested_file_name())


@ui.page('/')
def main_page():
    ui.dark_mode().enable()
    ui.query('body').style('margin: 0; padding: 0; overflow: hidden;')

    session = EditorSession(on_file_used=add_recent_file)
    state = {'selected_id': None, 'selected_tag': None, 'chart': None, 'status': None}

    # --- Rendering ---

    def refresh_chart_ui():
        chart = state['chart']
        if chart is None:
            return
        chart.options.clear()
        chart.options.update(build_echart_options(session.document, state['selected_id']))
        chart.update()
        state['status'].text = f"Adventure Game Planner - {session.display_name}"
        render_details()

    def handle_change(change: Change):
        if change.kind is ChangeKind.DOCUMENT_REPLACED:
            state['selected_id'] = None
            state['selected_tag'] = None
        refresh_chart_ui()

    session.on_change = handle_change

    def select_node(node_id):
        state['selected_id'] = node_id
        refresh_chart_ui()

    def handle_chart_click(e):
        payload = click_event_fields(e.args)
        node_id = resolve_node_id_from_payload(payload, session.graph)
        select_node(node_id)

    # --- Actions ---

    def do_new():
        session.new_document()

    def do_add_child():
        parent = session.graph.get(state['selected_id']) if state['selected_id'] else session.graph.root
        if parent is None:
            return
        child = session.graph.add_child(parent)
        select_node(child.id)

    def do_delete():
        node = session.graph.get(state['selected_id']) if state['selected_id'] else None
        if node is None:
            return
        if not session.graph.delete_subtree(node):
            ui.notify('The start node cannot be deleted.', type='warning')
            return
        select_node(None)

    def do_undo():
        session.undo()

    def do_open(path: str):
        try:
            result = session.load(path)
        except PersistenceError as e:
            ui.notify(f'Could not open the adventure file. Error: {e}', type='negative', multi_line=True)
            return False
        if result.incomplete:
            ui.notify('Some annotations in this file could not be read.', type='warning')
        return True

    def do_save(path=None):
        try:
            saved = session.save(path)
        except (PersistenceError, ValueError) as e:
            ui.notify(f'Could not save the adventure file. Error: {e}', type='negative', multi_line=True)
            return False
        state['status'].text = f"Saving {saved.name}..."
        ui.timer(SAVE_INDICATOR_SECONDS,
                 lambda: setattr(state['status'], 'text', f"Adventure Game Planner - {saved.name}"),
                 once=True)
        return True

    def show_path_dialog(title, initial, on_submit):
        with ui.dialog() as dialog, ui.card().classes('w-[32rem]'):
            ui.label(title).classes('text-lg font-bold')
            path_input = ui.input('File', value=initial).classes('w-full')
            recent = get_recent_files()
            if recent:
                ui.select(recent, label='Recent', on_change=lambda e: path_input.set_value(e.value)).classes('w-full')

            def submit():
                value = (path_input.value or '').strip()
                if value and on_submit(value):
                    dialog.close()

            with ui.row().classes('w-full justify-end gap-2 mt-4'):
                ui.button('Cancel', on_click=dialog.close).props('flat')
                ui.button('OK', on_click=submit).props('color=primary')
        dialog.open()

    def do_open_dialog():
        show_path_dialog('Open Adventure File', get_last_directory() or '', do_open)

    def do_save_dialog(save_as=False):
        if session.is_untitled or save_as:
            show_path_dialog(f'Save Adventure File (*{FILE_EXTENSION})', default_save_path(session), do_save)
        else:
            do_save()

    def do_add_tag():
        root = session.graph.root
        x, y = (root.x, root.y - 80) if root else (0.0, 0.0)
        state['selected_tag'] = session.add_tag((x, y))
        refresh_chart_ui()

    def show_connection_dialog():
        root = session.graph.root
        x, y = (root.x, root.y) if root else (0.0, 0.0)
        with ui.dialog() as dialog, ui.card().classes('w-[28rem]'):
            ui.label('Add Free Connection').classes('text-lg font-bold')
            with ui.row().classes('gap-2'):
                x1 = ui.number('Start X', value=x).props('dense outlined style="width: 90px"')
                y1 = ui.number('Start Y', value=y).props('dense outlined style="width: 90px"')
            with ui.row().classes('gap-2'):
                x2 = ui.number('End X', value=x + 200).props('dense outlined style="width: 90px"')
                y2 = ui.number('End Y', value=y).props('dense outlined style="width: 90px"')

            def submit():
                session.add_connection((float(x1.value or 0), float(y1.value or 0)),
                                       (float(x2.value or 0), float(y2.value or 0)))
                dialog.close()
                refresh_chart_ui()

            with ui.row().classes('w-full justify-end gap-2 mt-4'):
                ui.button('Cancel', on_click=dialog.close).props('flat')
                ui.button('Connect', on_click=submit).props('color=primary')
        dialog.open()

    def select_tag(tag):
        state['selected_tag'] = tag
        render_details()

    def delete_connection(connection):
        if session.delete_connection(connection):
            refresh_chart_ui()

    # --- Side panel ---

    def render_tag_editor(tag):
        ui.separator()
        tag_input = ui.input('Tag text', value=tag.text).classes('w-full')
        with ui.row().classes('gap-2'):
            tag_x = ui.number('X', value=tag.x).props('dense outlined style="width: 90px"')
            tag_y = ui.number('Y', value=tag.y).props('dense outlined style="width: 90px"')

            def apply_tag_move():
                if session.move_tag(tag, float(tag_x.value or 0), float(tag_y.value or 0)):
                    refresh_chart_ui()
            ui.button('Move', on_click=apply_tag_move).props('flat dense')

        def apply_tag_text():
            if session.edit_tag_text(tag, tag_input.value or ''):
                refresh_chart_ui()

        def delete_tag():
            session.delete_tag(tag)
            state['selected_tag'] = None
            refresh_chart_ui()

        with ui.row().classes('gap-2'):
            ui.button('Update tag', on_click=apply_tag_text).props('flat dense')
            ui.button('Delete tag', on_click=delete_tag).props('flat dense color=negative')

    def render_annotations():
        tags = session.overlays.tags()
        connections = session.overlays.connections()
        if not tags and not connections:
            return
        ui.separator()
        ui.label('Annotations').classes('text-sm font-bold text-gray-300')
        for tag in tags:
            with ui.row().classes('w-full items-center justify-between'):
                ui.label(tag.text or '(empty tag)').classes('text-sm truncate max-w-[14rem]')
                ui.button(icon='edit', on_click=lambda t=tag: select_tag(t)).props('flat dense')
        for connection in connections:
            (sx, sy), (ex, ey) = connection.start, connection.end
            with ui.row().classes('w-full items-center justify-between'):
                ui.label(f'({sx:.0f}, {sy:.0f}) → ({ex:.0f}, {ey:.0f})').classes('text-sm')
                ui.button(icon='delete', on_click=lambda c=connection: delete_connection(c)
                          ).props('flat dense color=negative')

    def render_details():
        container = state.get('details_container')
        if container is None:
            return
        container.clear()
        node = session.graph.get(state['selected_id']) if state['selected_id'] else None
        with container:
            if node is None:
                ui.label('Select a node to edit it.').classes('text-gray-400')
            else:
                ui.input('Title', value=node.title,
                         on_change=lambda e: session.graph.set_title(node, e.value)).classes('w-full')
                ui.textarea('Description', value=node.description,
                            on_change=lambda e: session.graph.set_description(node, e.value)
                            ).classes('w-full').props('outlined rows=4')
                with ui.row().classes('gap-2'):
                    x_input = ui.number('X', value=node.x).props('dense outlined style="width: 90px"')
                    y_input = ui.number('Y', value=node.y).props('dense outlined style="width: 90px"')

                    def apply_move():
                        if session.move_node(node, float(x_input.value or 0), float(y_input.value or 0)):
                            refresh_chart_ui()
                    ui.button('Move', on_click=apply_move).props('flat dense')

                for child in session.graph.children_of(node):
                    ui.input(f'Choice leading to "{child.title}"',
                             value=session.graph.get_decision_text(node, child.id),
                             on_change=lambda e, cid=child.id: session.graph.set_decision_text(node, cid, e.value)
                             ).classes('w-full')

            tag = state['selected_tag']
            if tag is not None and session.overlays.has_tag(tag):
                render_tag_editor(tag)
            render_annotations()

    # --- Keyboard ---

    def handle_keyboard(e):
        if not e.action.keydown or not e.modifiers.ctrl:
            return
        key = str(e.key).lower()
        if key == 'z':
            do_undo()
        elif key == 's':
            do_save_dialog(save_as=e.modifiers.shift)
        elif key == 'o':
            do_open_dialog()
        elif key == 'n':
            do_new()

    ui.keyboard(on_key=handle_keyboard)

    # --- Layout Construction ---

    with ui.row().classes('fixed top-4 left-4 z-10 gap-2 items-center bg-slate-900/90 p-2 rounded'):
        ui.button(icon='note_add', on_click=do_new).props('flat dense').tooltip('New (Ctrl+N)')
        ui.button(icon='folder_open', on_click=do_open_dialog).props('flat dense').tooltip('Open (Ctrl+O)')
        ui.button(icon='save', on_click=lambda: do_save_dialog()).props('flat dense').tooltip('Save (Ctrl+S)')
        ui.button(icon='account_tree', on_click=do_add_child).props('flat dense').tooltip('Add Branch')
        ui.button(icon='delete', on_click=do_delete).props('flat dense color=negative').tooltip('Delete Branch')
        ui.button(icon='sell', on_click=do_add_tag).props('flat dense').tooltip('Add Tag')
        ui.button(icon='timeline', on_click=show_connection_dialog).props('flat dense').tooltip('Add Connection')
        ui.button(icon='undo', on_click=do_undo).props('flat dense').tooltip('Undo (Ctrl+Z)')
        state['status'] = ui.label('').classes('text-sm text-gray-300 ml-4')

    state['chart'] = ui.echart(build_echart_options(session.document))
    state['chart'].style('width: 100vw; height: 100vh; position: absolute; top: 0; left: 0; z-index: 0;')
    state['chart'].on('componentClick', handle_chart_click, REQUESTED_EVENT_KEYS)

    with ui.card().classes('fixed right-6 top-6 w-96 max-h-[90vh] overflow-y-auto z-20 bg-slate-900/95'):
        state['details_container'] = ui.column().classes('w-full gap-3')

    refresh_chart_ui()


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='Adventure Game Planner',
        port=get_port(),
        reload=not getattr(sys, 'frozen', False),
    )
