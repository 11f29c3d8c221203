from .format import render_bill, render_combinations, summary_rows

__all__ = ["render_bill", "render_combinations", "summary_rows"]
