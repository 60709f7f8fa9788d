"""
CSV and XLSX builders shared by the export endpoints.
"""

import csv
from io import BytesIO, StringIO

import pandas as pd
from flask import make_response
from openpyxl.styles import Font, PatternFill, Alignment

CSV_MIMETYPE = 'text/csv; charset=utf-8'
XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
EXPORT_FORMATS = ('csv', 'xlsx')


def build_csv(headers, rows, comments=None):
    """Render rows as CSV text, optionally preceded by ``# comment`` lines and a blank line."""
    output = StringIO()
    if comments:
        for line in comments:
            output.write(f"# {line}\n")
        output.write("\n")
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(headers)
    writer.writerows(rows)
    return output.getvalue()


def build_xlsx(headers, rows, sheet_name='Export'):
    df = pd.DataFrame(rows, columns=headers)
    output = BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        worksheet = writer.sheets[sheet_name]

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center")
        for col in range(1, len(headers) + 1):
            cell = worksheet.cell(row=1, column=col)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment
    output.seek(0)
    return output.getvalue()


def file_response(content, filename, mimetype):
    response = make_response(content)
    response.headers['Content-Type'] = mimetype
    response.headers['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def export_response(headers, rows, filename_stem, export_format='csv', comments=None, sheet_name='Export'):
    if export_format == 'xlsx':
        return file_response(build_xlsx(headers, rows, sheet_name), f"{filename_stem}.xlsx", XLSX_MIMETYPE)
    return file_response(build_csv(headers, rows, comments), f"{filename_stem}.csv", CSV_MIMETYPE)
