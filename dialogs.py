import tkinter as tk
from tkinter import ttk, simpledialog, messagebox

from config import TASK_STATUS_LABELS
from core_logic import format_date, parse_date
from importers import IMPORT_FIELDS


class EditTaskDialog(simpledialog.Dialog):
    """Edits one task. On OK, `result` holds only the fields that changed."""

    def __init__(self, parent, title, task_data, predecessor_titles=None, allow_delete=True):
        self.task_data = task_data
        self.predecessor_titles = predecessor_titles or []
        self.allow_delete = allow_delete
        self.result = None
        self.delete_requested = False
        super().__init__(parent, title)

    def body(self, master):
        main_frame = ttk.LabelFrame(master, text="Task Properties", padding=10)
        main_frame.pack(fill=tk.X, padx=10, pady=5)

        ttk.Label(main_frame, text="Title:").grid(row=0, column=0, sticky="w", padx=5, pady=2)
        self.title_var = tk.StringVar(value=self.task_data.get('title') or "")
        title_entry = ttk.Entry(main_frame, textvariable=self.title_var, width=40)
        title_entry.grid(row=0, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="Status:").grid(row=1, column=0, sticky="w", padx=5, pady=2)
        self.status_labels = list(TASK_STATUS_LABELS.values())
        self.status_var = tk.StringVar(value=TASK_STATUS_LABELS.get(self.task_data.get('status'), "To Do"))
        ttk.Combobox(main_frame, textvariable=self.status_var, values=self.status_labels,
                     state="readonly", width=37).grid(row=1, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="Start Date (YYYY-MM-DD):").grid(row=2, column=0, sticky="w", padx=5, pady=2)
        self.start_date_var = tk.StringVar(value=self.task_data.get('start_date') or "")
        ttk.Entry(main_frame, textvariable=self.start_date_var, width=40).grid(row=2, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="End Date (YYYY-MM-DD):").grid(row=3, column=0, sticky="w", padx=5, pady=2)
        self.end_date_var = tk.StringVar(value=self.task_data.get('end_date') or "")
        ttk.Entry(main_frame, textvariable=self.end_date_var, width=40).grid(row=3, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="Estimated Hours:").grid(row=4, column=0, sticky="w", padx=5, pady=2)
        self.estimated_var = tk.StringVar(value=self._hours_text('estimated_hours'))
        ttk.Entry(main_frame, textvariable=self.estimated_var, width=40).grid(row=4, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="Actual Hours:").grid(row=5, column=0, sticky="w", padx=5, pady=2)
        self.actual_var = tk.StringVar(value=self._hours_text('actual_hours'))
        ttk.Entry(main_frame, textvariable=self.actual_var, width=40).grid(row=5, column=1, sticky="w", padx=5, pady=2)

        if self.predecessor_titles:
            ttk.Label(main_frame, text="Depends On:").grid(row=6, column=0, sticky="nw", padx=5, pady=2)
            ttk.Label(main_frame, text="\n".join(self.predecessor_titles),
                      justify=tk.LEFT).grid(row=6, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(master,
                  text="Note: Dependencies are added by dragging between bar handles and removed by clicking an arrow.",
                  font=("Arial", 8, "italic"), justify=tk.LEFT).pack(padx=10, pady=(0, 5), fill=tk.X)

        return title_entry

    def buttonbox(self):
        super().buttonbox()
        if self.allow_delete:
            box = ttk.Frame(self)
            ttk.Button(box, text="Delete Task", command=self._delete).pack(side=tk.LEFT, padx=5, pady=5)
            box.pack()

    def _hours_text(self, field):
        value = self.task_data.get(field)
        return "" if value is None else f"{value:g}"

    def _delete(self):
        if messagebox.askyesno("Delete Task", "Delete this task and its dependencies?", parent=self):
            self.delete_requested = True
            self.cancel()

    def _parse_hours(self, text, label):
        text = text.strip()
        if not text:
            return None
        hours = float(text)
        if hours < 0:
            raise ValueError(f"{label} cannot be negative.")
        return hours

    def validate(self):
        try:
            start = self.start_date_var.get().strip()
            end = self.end_date_var.get().strip()
            self._start = format_date(start) if start else None
            self._end = format_date(end) if end else None
            self._estimated = self._parse_hours(self.estimated_var.get(), "Estimated hours")
            self._actual = self._parse_hours(self.actual_var.get(), "Actual hours")
        except ValueError as e:
            messagebox.showerror("Invalid Value", str(e), parent=self)
            return False

        if not self.title_var.get().strip():
            messagebox.showerror("Invalid Value", "Title cannot be empty.", parent=self)
            return False
        if self._start and self._end and parse_date(self._end) < parse_date(self._start):
            messagebox.showerror("Invalid Value", "End date cannot be before start date.", parent=self)
            return False
        return True

    def apply(self):
        status = next(key for key, label in TASK_STATUS_LABELS.items() if label == self.status_var.get())
        fields = {
            'title': self.title_var.get().strip(),
            'status': status,
            'start_date': self._start,
            'end_date': self._end,
            'estimated_hours': self._estimated,
            'actual_hours': self._actual,
        }
        self.result = {k: v for k, v in fields.items() if self.task_data.get(k) != v}


class ColumnMappingDialog(simpledialog.Dialog):
    """
    Dialog for mapping CSV/Excel columns to task fields during import.
    """
    def __init__(self, parent, title, columns):
        self.columns = columns
        self.mapping = {}
        super().__init__(parent, title)

    def body(self, master):
        instruction_frame = ttk.Frame(master, padding=10)
        instruction_frame.pack(fill=tk.X)

        ttk.Label(
            instruction_frame,
            text="Map the columns from your file to the corresponding task fields.\n"
                 "Leave fields as 'Not Mapped' if not applicable.",
            justify=tk.LEFT
        ).pack(anchor="w")

        mapping_frame = ttk.LabelFrame(master, text="Column Mapping", padding=10)
        mapping_frame.pack(fill=tk.X, padx=10, pady=10)

        self.mapping_vars = {}
        column_options = ["Not Mapped"] + self.columns

        for i, (field_name, required) in enumerate(IMPORT_FIELDS):
            label_text = f"{field_name}*:" if required else f"{field_name}:"
            ttk.Label(mapping_frame, text=label_text).grid(row=i, column=0, sticky="w", padx=5, pady=3)

            var = tk.StringVar(value="Not Mapped")

            # Try to auto-detect matching columns
            for col in self.columns:
                col_lower = str(col).lower().replace("_", " ").replace("-", " ")
                field_lower = field_name.lower()
                if field_lower in col_lower or col_lower in field_lower:
                    var.set(col)
                    break

            combo = ttk.Combobox(mapping_frame, textvariable=var, values=column_options,
                                 state="readonly", width=30)
            combo.grid(row=i, column=1, sticky="w", padx=5, pady=3)
            self.mapping_vars[field_name] = var

        ttk.Label(master, text="* Required field", font=("Arial", 8, "italic")).pack(anchor="w", padx=10, pady=(0, 10))

        return mapping_frame

    def validate(self):
        title_mapping = self.mapping_vars.get("Title")
        if not title_mapping or title_mapping.get() == "Not Mapped":
            messagebox.showerror("Mapping Required", "You must map a column to 'Title'.", parent=self)
            return False
        return True

    def apply(self):
        for field_name, var in self.mapping_vars.items():
            value = var.get()
            if value and value != "Not Mapped":
                self.mapping[field_name] = value
