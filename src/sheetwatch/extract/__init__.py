from sheetwatch.extract.changes import is_unchanged, normalize_text
from sheetwatch.extract.columns import index_to_letter, letter_to_index, ordered_columns
from sheetwatch.extract.pattern import PathMatcher, compile_pattern
from sheetwatch.extract.record import build_record_data, header_field_names
from sheetwatch.extract.selector import Selection, select_row
from sheetwatch.extract.walker import discover_files, walk_files
from sheetwatch.extract.workbook import Workbook, open_workbook

__all__ = [
    "PathMatcher",
    "Selection",
    "Workbook",
    "build_record_data",
    "compile_pattern",
    "discover_files",
    "header_field_names",
    "index_to_letter",
    "is_unchanged",
    "letter_to_index",
    "normalize_text",
    "open_workbook",
    "ordered_columns",
    "select_row",
    "walk_files",
]
