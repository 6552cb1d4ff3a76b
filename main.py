import tkinter as tk
from tkinter import ttk, filedialog, messagebox
from datetime import date, timedelta
import logging
import os

from matplotlib.figure import Figure
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg
from matplotlib.patches import Patch, Rectangle

# Local imports
from config import (ZOOM_CONFIG, ROW_HEIGHT, TASK_STATUS_LABELS, status_colors, today_color,
                    arrow_color, default_project)
from core_logic import format_date, has_dates, progress_percent, tasks_with_dates
from chart import GanttChart
from dialogs import EditTaskDialog, ColumnMappingDialog
from errors import ExternalWriteFailed, PartialPropagation, ValidationRejected
from importers import read_table, rows_to_tasks, import_into_store
from interaction import BarGesture, LinkGesture
from layout import press_target, rubber_band, task_at
from store import InMemoryTaskStore, load_project, save_project

logger = logging.getLogger(__name__)

# Figure margins in pixels around the timeline body.
MARGIN_LEFT = 20
MARGIN_RIGHT = 20
MARGIN_BOTTOM = 20
DPI = 100


class GanttChartApp(tk.Tk):
    def __init__(self):
        super().__init__()
        self.title("Gantt Planner")
        self.geometry("1600x800")

        # --- App State ---
        self.store = InMemoryTaskStore(default_project["tasks"], default_project["dependencies"])
        self.chart = GanttChart(self.store)

        # --- UI State ---
        self.project_name_var = tk.StringVar(value=default_project["project_name"])
        self.show_dependencies_var = tk.BooleanVar(value=True)
        self.task_count_var = tk.StringVar()
        self.current_filepath = None
        self.controls_visible = True
        self._gesture = None
        self._link_gesture = None
        self._last_pointer = None
        self._layout = None
        self._bar_patches = {}   # task_id -> (bar patch, progress patch)
        self._rubber_line = None
        self.zoom_buttons = {}
        self.style = ttk.Style()
        self.style.configure('Accent.TButton', relief=tk.SUNKEN)

        # --- Menu Bar ---
        self.create_menu()

        # --- Main Layout ---
        self.main_frame = ttk.Frame(self)
        self.main_frame.pack(side=tk.TOP, fill=tk.BOTH, expand=True)

        self.control_frame = ttk.Frame(self.main_frame, width=520, padding="10")
        self.control_frame.pack(side=tk.LEFT, fill=tk.Y, expand=False)

        # Separator and toggle button
        self.separator_frame = ttk.Frame(self.main_frame, width=20)
        self.separator_frame.pack(side=tk.LEFT, fill=tk.Y)
        self.toggle_button = ttk.Button(self.separator_frame, text="<", command=self.toggle_controls, width=2)
        self.toggle_button.pack(pady=20)

        self.chart_frame = ttk.Frame(self.main_frame)
        self.chart_frame.pack(side=tk.RIGHT, fill=tk.BOTH, expand=True)

        # --- Initialization ---
        self.setup_chart_canvas()
        self.build_controls()
        self.connect_drag_events()
        self.refresh_view()
        self.update_window_title()

    # --- Chart Canvas ---

    def setup_chart_canvas(self):
        # The figure is sized so one data unit is one screen pixel, and scrolls
        # inside a plain tk canvas when it is larger than the window.
        self.scroll_canvas = tk.Canvas(self.chart_frame, highlightthickness=0)
        x_scroll = ttk.Scrollbar(self.chart_frame, orient=tk.HORIZONTAL, command=self.scroll_canvas.xview)
        y_scroll = ttk.Scrollbar(self.chart_frame, orient=tk.VERTICAL, command=self.scroll_canvas.yview)
        self.scroll_canvas.configure(xscrollcommand=x_scroll.set, yscrollcommand=y_scroll.set)
        x_scroll.pack(side=tk.BOTTOM, fill=tk.X)
        y_scroll.pack(side=tk.RIGHT, fill=tk.Y)
        self.scroll_canvas.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)

        self.figure = Figure(figsize=(12, 4), dpi=DPI)
        self.ax = self.figure.add_axes([0, 0, 1, 1])
        self.canvas = FigureCanvasTkAgg(self.figure, self.scroll_canvas)
        self._canvas_window = self.scroll_canvas.create_window(0, 0, anchor="nw", window=self.canvas.get_tk_widget())

    def connect_drag_events(self):
        self.canvas.mpl_connect('button_press_event', self.on_press)
        self.canvas.mpl_connect('motion_notify_event', self.on_motion)
        self.canvas.mpl_connect('button_release_event', self.on_release)

    def _set_cursor(self, cursor):
        self.canvas.get_tk_widget().config(cursor=cursor)

    def _target_under_pointer(self, event):
        if event.inaxes != self.ax or event.xdata is None or self._layout is None:
            return None
        arrows = self._layout['arrows'] if self.show_dependencies_var.get() else []
        return press_target(self._layout['bars'], arrows, event.xdata, event.ydata)

    def on_press(self, event):
        if event.inaxes != self.ax or event.xdata is None or event.button != 1:
            return

        target = self._target_under_pointer(event)
        if target is None:
            return
        if target[0] == 'arrow':
            # Clicking an arrow removes the dependency.
            self.remove_dependency(target[1])
            return

        _, bar, zone = target
        task = self.chart.get_task(bar['task_id'])
        if zone in ('move', 'resize'):
            self._gesture = BarGesture(task, zone, event.xdata, self._layout['day_width'])
            self._set_cursor("sb_h_double_arrow" if zone == "resize" else "hand2")
        else:
            handle = 'start' if zone == 'link_start' else 'end'
            self._link_gesture = LinkGesture(task['id'], handle, event.xdata, event.ydata)
            points = rubber_band(task, handle, bar['row'], (event.xdata, event.ydata),
                                 self._layout['timeline_start'], self._layout['day_width'])
            xs, ys = zip(*points)
            self._rubber_line, = self.ax.plot(xs, ys, color=arrow_color, ls='--', lw=1.5)
            self._set_cursor("crosshair")
        self._last_pointer = (event.xdata, event.ydata)

    def on_motion(self, event):
        # Outside the axes the last in-axes position stands in, so a gesture
        # survives the pointer leaving the chart.
        if event.inaxes == self.ax and event.xdata is not None:
            pointer = (event.xdata, event.ydata)
        else:
            pointer = self._last_pointer

        if self._gesture is not None:
            if pointer is None:
                return
            self._last_pointer = pointer
            preview = self._gesture.motion(pointer[0])
            bar = next(b for b in self._layout['bars'] if b['task_id'] == self._gesture.task_id)
            patch, progress_patch = self._bar_patches[self._gesture.task_id]
            patch.set_x(bar['left'] + preview['left_offset'])
            patch.set_width(preview['width'])
            progress_patch.set_x(bar['left'] + preview['left_offset'])
            progress_patch.set_width(preview['width'] * bar['progress'] / 100)
            self.canvas.draw_idle()
            return

        if self._link_gesture is not None:
            if pointer is None:
                return
            self._last_pointer = pointer
            self._link_gesture.motion(*pointer)
            task = self.chart.get_task(self._link_gesture.task_id)
            row = next(b['row'] for b in self._layout['bars'] if b['task_id'] == task['id'])
            points = rubber_band(task, self._link_gesture.handle, row, pointer,
                                 self._layout['timeline_start'], self._layout['day_width'])
            xs, ys = zip(*points)
            self._rubber_line.set_data(xs, ys)
            self.canvas.draw_idle()
            return

        # --- Cursor Logic ---
        cursor = ""
        target = self._target_under_pointer(event)
        if target is not None and target[0] == 'arrow':
            cursor = "X_cursor"
        elif target is not None:
            zone = target[2]
            if zone == 'resize':
                cursor = "sb_h_double_arrow"
            elif zone == 'move':
                cursor = "hand2"
            elif zone in ('link_start', 'link_end'):
                cursor = "crosshair"
        self._set_cursor(cursor)

    def on_release(self, event):
        if event.inaxes == self.ax and event.xdata is not None:
            self._last_pointer = (event.xdata, event.ydata)
        pointer = self._last_pointer

        if self._gesture is not None:
            gesture, self._gesture = self._gesture, None
            outcome = gesture.release(pointer[0])
            self._set_cursor("")
            if outcome is None:
                self.draw_gantt_chart()
            elif outcome['action'] == 'click':
                self.edit_task(outcome['task_id'])
            else:
                self.commit(outcome)
            return

        if self._link_gesture is not None:
            gesture, self._link_gesture = self._link_gesture, None
            target = task_at(self._layout['bars'], pointer[0], pointer[1]) if pointer else None
            pair = gesture.release(target)
            self._rubber_line = None
            self._set_cursor("")
            if pair is not None:
                self.commit({'action': 'link', 'task_id': pair[0], 'depends_on_id': pair[1]})
            else:
                self.draw_gantt_chart()

    def commit(self, outcome):
        try:
            self.chart.commit(outcome)
        except ValidationRejected as e:
            logger.debug("Gesture rejected: %s", e)
        except PartialPropagation as e:
            messagebox.showwarning("Dependencies Not Updated", f"{e}\n\nThe chart shows the saved state.")
        except ExternalWriteFailed as e:
            messagebox.showerror("Save Failed", f"Could not save the change: {e}")
        self.refresh_view(refetch=False)

    def remove_dependency(self, edge_id):
        try:
            self.chart.on_dependency_remove(edge_id)
        except ExternalWriteFailed as e:
            messagebox.showerror("Save Failed", f"Could not remove the dependency: {e}")
        self.refresh_view(refetch=False)

    # --- Menu and Controls ---

    def toggle_controls(self):
        if self.controls_visible:
            self.control_frame.pack_forget()
            self.toggle_button.config(text=">")
            self.controls_visible = False
        else:
            self.control_frame.pack(side=tk.LEFT, fill=tk.Y, expand=False, before=self.separator_frame)
            self.toggle_button.config(text="<")
            self.controls_visible = True

    def create_menu(self):
        menubar = tk.Menu(self)
        self.config(menu=menubar)

        file_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="File", menu=file_menu)

        file_menu.add_command(label="New Blank Project", command=self.new_blank_project)
        file_menu.add_command(label="Load Demo Project", command=self.load_demo_project)
        file_menu.add_separator()
        file_menu.add_command(label="Open Project...", command=self.open_project)
        file_menu.add_command(label="Save Project As...", command=self.save_project_as)
        file_menu.add_separator()
        file_menu.add_command(label="Import Tasks...", command=self.import_tasks)
        file_menu.add_command(label="Export Chart...", command=self.export_chart)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.quit)

    def build_controls(self):
        for widget in self.control_frame.winfo_children():
            widget.destroy()

        settings_frame = ttk.LabelFrame(self.control_frame, text="Project Settings", padding="10")
        settings_frame.pack(fill=tk.X, pady=5)

        ttk.Label(settings_frame, text="Project Name:").grid(row=0, column=0, sticky="w")
        project_name_entry = ttk.Entry(settings_frame, textvariable=self.project_name_var)
        project_name_entry.grid(row=0, column=1, sticky="w", pady=2)
        project_name_entry.bind("<FocusOut>", lambda e: self.update_window_title())
        project_name_entry.bind("<Return>", lambda e: self.update_window_title())

        ttk.Label(settings_frame, text="Zoom:").grid(row=1, column=0, sticky="w", pady=5)
        zoom_frame = ttk.Frame(settings_frame)
        zoom_frame.grid(row=1, column=1, sticky="w")
        for zoom in ZOOM_CONFIG:
            button = ttk.Button(zoom_frame, text=zoom.capitalize(), width=7,
                                command=lambda z=zoom: self.set_zoom(z))
            button.pack(side=tk.LEFT, padx=2)
            self.zoom_buttons[zoom] = button

        ttk.Label(settings_frame, text="Show Dependencies:").grid(row=2, column=0, sticky="w", pady=5)
        deps_toggle = ttk.Checkbutton(settings_frame, variable=self.show_dependencies_var, command=self.draw_gantt_chart)
        deps_toggle.grid(row=2, column=1, sticky="w")

        editor_frame = ttk.LabelFrame(self.control_frame, text="Tasks", padding="10")
        editor_frame.pack(fill=tk.BOTH, expand=True, pady=5)

        columns = ("status", "start_date", "end_date", "progress")
        self.task_tree = ttk.Treeview(editor_frame, columns=columns, show="tree headings")

        self.task_tree.heading("#0", text="Title")
        self.task_tree.column("#0", width=180, anchor='w')
        self.task_tree.heading("status", text="Status")
        self.task_tree.column("status", width=90, anchor='center')
        self.task_tree.heading("start_date", text="Start")
        self.task_tree.column("start_date", width=85, anchor='center')
        self.task_tree.heading("end_date", text="End")
        self.task_tree.column("end_date", width=85, anchor='center')
        self.task_tree.heading("progress", text="Progress")
        self.task_tree.column("progress", width=65, anchor='center')

        self.task_tree.pack(fill=tk.BOTH, expand=True)
        self.task_tree.bind("<Double-1>", lambda e: self.edit_task())

        ttk.Label(editor_frame, textvariable=self.task_count_var,
                  font=("Arial", 8, "italic")).pack(anchor="e", pady=(5, 0))

        action_frame = ttk.Frame(self.control_frame)
        action_frame.pack(fill=tk.X, pady=10)

        ttk.Button(action_frame, text="Add New Task", command=self.add_task).pack(side=tk.LEFT, padx=5)
        ttk.Button(action_frame, text="Edit Selected Task", command=self.edit_task).pack(side=tk.LEFT, padx=5)
        ttk.Button(action_frame, text="Remove Selected Task", command=self.remove_task).pack(side=tk.LEFT, padx=5)

    def set_zoom(self, zoom):
        self.chart.set_zoom(zoom)
        self.draw_gantt_chart()

    def populate_treeview(self):
        for i in self.task_tree.get_children():
            self.task_tree.delete(i)

        # Dated tasks first, in timeline row order, then the rest.
        dated = tasks_with_dates(self.chart.tasks)
        undated = [t for t in self.chart.tasks if not has_dates(t)]
        for task in dated + undated:
            progress = f"{progress_percent(task)}%" if task.get('estimated_hours') else ""
            self.task_tree.insert(
                "", "end", iid=task['id'], text=task['title'],
                values=(TASK_STATUS_LABELS.get(task['status'], task['status']),
                        task.get('start_date') or "", task.get('end_date') or "", progress)
            )
        self.task_count_var.set(f"{len(dated)} of {len(self.chart.tasks)} tasks with dates")

    def update_window_title(self):
        project_name = self.project_name_var.get()
        if self.current_filepath:
            self.title(f"{project_name} - {self.current_filepath}")
        else:
            self.title(f"{project_name} - Gantt Planner")

    def refresh_view(self, refetch=True):
        if refetch:
            self.chart.refresh()
        self.populate_treeview()
        self.draw_gantt_chart()

    # --- Project Files ---

    def _replace_store(self, store, project_name, filepath=None):
        self.store = store
        self.chart = GanttChart(store, zoom=self.chart.zoom)
        self.project_name_var.set(project_name)
        self.current_filepath = filepath
        self.refresh_view(refetch=False)
        self.update_window_title()

    def new_blank_project(self):
        self._replace_store(InMemoryTaskStore(), "New Project")

    def load_demo_project(self):
        self._replace_store(InMemoryTaskStore(default_project["tasks"], default_project["dependencies"]),
                            default_project["project_name"])

    def open_project(self):
        filepath = filedialog.askopenfilename(
            filetypes=[("Gantt Project Files", "*.gantt"), ("All Files", "*.*")]
        )
        if not filepath:
            return
        try:
            store, project_name = load_project(filepath)
        except (OSError, ValueError, KeyError) as e:
            messagebox.showerror("Open Project", f"Could not open the project: {e}")
            return
        self._replace_store(store, project_name, filepath)

    def save_project_as(self):
        filepath = filedialog.asksaveasfilename(
            defaultextension=".gantt",
            filetypes=[("Gantt Project Files", "*.gantt"), ("All Files", "*.*")]
        )
        if not filepath:
            return
        try:
            save_project(self.store, filepath, self.project_name_var.get())
        except OSError as e:
            messagebox.showerror("Save Project", f"Could not save the project: {e}")
            return
        self.current_filepath = filepath
        self.update_window_title()

    def import_tasks(self):
        filepath = filedialog.askopenfilename(
            filetypes=[("Spreadsheets", "*.csv *.xls *.xlsx"), ("All Files", "*.*")],
            title="Import Tasks"
        )
        if not filepath:
            return
        try:
            df = read_table(filepath)
        except Exception as e:
            messagebox.showerror("Error Reading File", f"An error occurred while reading the file: {e}")
            return

        dialog = ColumnMappingDialog(self, "Map Columns", [str(c) for c in df.columns])
        if not dialog.mapping:
            return # User cancelled

        try:
            tasks, links = rows_to_tasks(df, dialog.mapping)
            created, edges = import_into_store(self.store, tasks, links, self.chart.project_id)
        except (ValueError, ExternalWriteFailed) as e:
            messagebox.showerror("Import Error", str(e))
            self.refresh_view()
            return
        self.refresh_view()
        messagebox.showinfo("Import Complete", f"Imported {len(created)} task(s) and {len(edges)} dependency link(s).")

    def export_chart(self):
        if not self.chart.tasks:
            messagebox.showinfo("Export Chart", "There is nothing to export.")
            return

        filepath = filedialog.asksaveasfilename(
            title="Export Gantt Chart",
            defaultextension=".png",
            filetypes=[
                ("PNG Image", "*.png"),
                ("PDF Document", "*.pdf"),
                ("SVG Vector Image", "*.svg"),
                ("All Files", "*.*")
            ]
        )
        if not filepath:
            return

        try:
            self.figure.savefig(filepath, bbox_inches='tight', dpi=300)
            messagebox.showinfo("Export Successful", f"Chart successfully saved to\n{filepath}")
        except Exception as e:
            messagebox.showerror("Export Error", f"An error occurred while exporting the chart: {e}")

    # --- Task Editing ---

    def _selected_task_id(self, action):
        selected_item = self.task_tree.selection()
        if not selected_item:
            messagebox.showwarning(action, "Please select a task.")
            return None
        return selected_item[0]

    def add_task(self):
        today = date.today()
        try:
            self.store.create_task({
                "title": f"New Task {len(self.chart.tasks) + 1}",
                "status": "todo",
                "project_id": self.chart.project_id,
                "start_date": format_date(today),
                "end_date": format_date(today + timedelta(days=2)),
            })
        except ExternalWriteFailed as e:
            messagebox.showerror("Add Task", str(e))
        self.refresh_view()

    def edit_task(self, task_id=None):
        if task_id is None:
            task_id = self._selected_task_id("Edit Task")
            if task_id is None:
                return

        task = self.chart.get_task(task_id)
        if task is None:
            return

        predecessor_titles = []
        for dep_id in self.chart.graph.predecessors_of(task_id):
            predecessor = self.chart.get_task(dep_id)
            if predecessor:
                predecessor_titles.append(predecessor['title'])

        dialog = EditTaskDialog(self, "Edit Task", task, predecessor_titles)
        try:
            if dialog.delete_requested:
                self.store.delete_task(task_id)
            elif dialog.result:
                self.store.update_task(task_id, dialog.result)
        except ExternalWriteFailed as e:
            messagebox.showerror("Save Failed", str(e))
        self.refresh_view()

    def remove_task(self):
        task_id = self._selected_task_id("Remove Task")
        if task_id is None:
            return
        try:
            self.store.delete_task(task_id)
        except ExternalWriteFailed as e:
            messagebox.showerror("Remove Task", str(e))
        self.refresh_view()

    # --- Drawing ---

    def _resize_figure(self, layout):
        header = layout['header_height']
        width_px = MARGIN_LEFT + max(layout['width'], 1) + MARGIN_RIGHT
        height_px = header + max(layout['height'], ROW_HEIGHT) + MARGIN_BOTTOM
        self.figure.set_size_inches(width_px / DPI, height_px / DPI, forward=False)
        self.ax.set_position([
            MARGIN_LEFT / width_px,
            MARGIN_BOTTOM / height_px,
            max(layout['width'], 1) / width_px,
            max(layout['height'], ROW_HEIGHT) / height_px,
        ])
        widget = self.canvas.get_tk_widget()
        widget.config(width=int(width_px), height=int(height_px))
        self.scroll_canvas.itemconfigure(self._canvas_window, width=int(width_px), height=int(height_px))
        self.scroll_canvas.configure(scrollregion=(0, 0, int(width_px), int(height_px)))

    def _draw_header(self, layout):
        rows = layout['header_rows']
        bottom = rows[-1]
        self.ax.xaxis.tick_top()
        self.ax.set_xticks([c['left'] + c['width'] / 2 for c in bottom])
        self.ax.set_xticklabels([c['label'] for c in bottom], fontsize=7)
        self.ax.tick_params(axis='x', length=0)
        for cell in bottom:
            self.ax.axvline(cell['left'], color='#e5e7eb', lw=0.5, zorder=0)
            if cell.get('weekend'):
                self.ax.axvspan(cell['left'], cell['left'] + cell['width'], color='#f1f5f9', zorder=0)

        if len(rows) > 1:
            months = self.ax.secondary_xaxis('top')
            months.set_xticks([c['left'] + c['width'] / 2 for c in rows[0]])
            months.set_xticklabels([c['label'] for c in rows[0]], fontsize=8, fontweight='bold')
            months.tick_params(axis='x', length=0, pad=24)

    def draw_gantt_chart(self):
        self.figure.clear()
        self.ax = self.figure.add_axes([0, 0, 1, 1])
        self._bar_patches = {}
        self._rubber_line = None

        layout = self.chart.layout()
        self._layout = layout
        self._resize_figure(layout)

        self.ax.set_xlim(0, max(layout['width'], 1))
        self.ax.set_ylim(max(layout['height'], ROW_HEIGHT), 0)
        self.ax.set_yticks([])
        for spine in ('left', 'right', 'bottom'):
            self.ax.spines[spine].set_visible(False)
        self._draw_header(layout)

        if not layout['bars']:
            self.ax.text(0.5, 0.5, "No tasks with dates. Add start/end dates to tasks to see them here.",
                         horizontalalignment='center', verticalalignment='center', transform=self.ax.transAxes)

        # Row backgrounds
        for row in range(len(layout['bars'])):
            if row % 2:
                self.ax.axhspan(row * ROW_HEIGHT, (row + 1) * ROW_HEIGHT, color='#f8fafc', zorder=0)

        tasks_by_id = {t['id']: t for t in layout['tasks']}
        for bar in layout['bars']:
            task = tasks_by_id[bar['task_id']]
            color = status_colors.get(task['status'], "gray")
            patch = Rectangle((bar['left'], bar['top']), bar['width'], bar['height'],
                              facecolor=color, edgecolor='black', lw=0.5, alpha=0.85, zorder=2)
            progress_patch = Rectangle((bar['left'], bar['top']), bar['width'] * bar['progress'] / 100, bar['height'],
                                       facecolor='black', alpha=0.15, lw=0, zorder=3)
            self.ax.add_patch(patch)
            self.ax.add_patch(progress_patch)
            self._bar_patches[bar['task_id']] = (patch, progress_patch)
            self.ax.text(bar['left'] + 4, bar['top'] + bar['height'] / 2, task['title'],
                         va='center', ha='left', fontsize=8, clip_on=True, zorder=4)

        if self.show_dependencies_var.get():
            self._draw_dependency_arrows(layout)

        if layout['today_x'] is not None:
            self.ax.axvline(layout['today_x'], color=today_color, lw=1.5, zorder=5)

        legend_elements = [Patch(facecolor=color, edgecolor='black', label=TASK_STATUS_LABELS[status])
                           for status, color in status_colors.items()]
        self.ax.legend(handles=legend_elements, loc='lower right', fontsize=7, draggable=True)

        self.canvas.draw()

    def _draw_dependency_arrows(self, layout):
        for arrow in layout['arrows']:
            xs, ys = zip(*arrow['points'])
            self.ax.plot(xs, ys, color=arrow_color, lw=1.5, zorder=1)
            self.ax.annotate("", xy=arrow['points'][-1], xytext=arrow['points'][-2],
                             arrowprops=dict(arrowstyle="-|>", color=arrow_color, lw=1.5), zorder=1)


def main():
    logging.basicConfig(
        level=os.environ.get("GANTT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = GanttChartApp()
    app.mainloop()


if __name__ == "__main__":
    main()
