"""
Export of report execution results to CSV, JSON, Excel and PDF.
"""
import csv
import io
import json
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from cmms_reports.schemas.report import ExportFormat, ReportExecutionResult

CONTENT_TYPES = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.JSON: "application/json",
    ExportFormat.EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ExportFormat.PDF: "application/pdf",
}

FILE_EXTENSIONS = {
    ExportFormat.CSV: "csv",
    ExportFormat.JSON: "json",
    ExportFormat.EXCEL: "xlsx",
    ExportFormat.PDF: "pdf",
}

HEADER_COLOR = "1e40af"


def export_filename(result: ReportExecutionResult, export_format: ExportFormat) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "_", result.metadata.report_name).strip("_").lower() or "report"
    stamp = result.metadata.executed_at.strftime("%Y%m%d_%H%M%S")
    return f"{slug}_{stamp}.{FILE_EXTENSIONS[export_format]}"


class ReportExporter:
    """Serializes a ReportExecutionResult. All methods are pure."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom paragraph styles."""
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Heading1'],
            fontSize=18,
            alignment=TA_CENTER,
            spaceAfter=20,
        ))
        self.styles.add(ParagraphStyle(
            name='ReportSubtitle',
            parent=self.styles['Normal'],
            fontSize=10,
            alignment=TA_CENTER,
            textColor=colors.gray,
            spaceAfter=30,
        ))
        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Heading2'],
            fontSize=12,
            spaceBefore=15,
            spaceAfter=10,
        ))

    def _format_value(self, value: Any) -> str:
        """Format value for display."""
        if value is None:
            return '-'
        if isinstance(value, bool):
            return 'Yes' if value else 'No'
        if isinstance(value, (float, Decimal)):
            if abs(value) >= 1000:
                return f'{value:,.2f}'
            return f'{value:.2f}'
        if isinstance(value, datetime):
            return value.strftime('%Y-%m-%d %H:%M')
        if isinstance(value, date):
            return value.strftime('%Y-%m-%d')
        return str(value)

    @staticmethod
    def _raw_value(value: Any) -> str:
        if value is None:
            return ''
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return str(value)

    @staticmethod
    def _excel_value(value: Any) -> Any:
        # Excel has no timezone support
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.replace(tzinfo=None)
        if isinstance(value, Decimal):
            return float(value)
        return value

    def _table(self, result: ReportExecutionResult) -> Tuple[List[str], List[List[Any]]]:
        columns = result.metadata.columns
        headers = [column.label for column in columns]
        rows = [[row.get(column.field) for column in columns] for row in result.data]
        return headers, rows

    def _aggregate_sections(self, result: ReportExecutionResult) -> List[Dict[str, Any]]:
        """Summary tables for aggregations, one row per group when grouped."""
        if result.groups:
            group_fields = list(result.groups[0].group.keys())
            value_keys = list(result.groups[0].values.keys())
            headers = group_fields + ["Rows"] + value_keys
            rows = [
                [group.group.get(field) for field in group_fields]
                + [group.row_count]
                + [group.values.get(key) for key in value_keys]
                for group in result.groups
            ]
            return [{"title": "Grouped Summary", "headers": headers, "rows": rows}]
        if result.aggregations:
            return [{
                "title": "Summary",
                "headers": list(result.aggregations.keys()),
                "rows": [list(result.aggregations.values())],
            }]
        return []

    def _subtitle(self, result: ReportExecutionResult) -> str:
        meta = result.metadata
        page = result.pagination
        return (
            f"{meta.data_source} | generated {self._format_value(meta.executed_at)} | "
            f"{meta.total} rows, page {page.page} of {max(page.total_pages, 1)}"
        )

    def to_csv(self, result: ReportExecutionResult) -> str:
        """Header row of column labels followed by one line per row."""
        headers, rows = self._table(result)
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(headers)
        for row in rows:
            writer.writerow([self._raw_value(cell) for cell in row])
        return output.getvalue()

    def to_json(self, result: ReportExecutionResult) -> str:
        return json.dumps(result.model_dump(mode="json"), indent=2)

    def to_excel(self, result: ReportExecutionResult) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = "Report"

        title_font = Font(name='Arial', size=16, bold=True)
        subtitle_font = Font(name='Arial', size=10, color='666666')
        header_font = Font(name='Arial', size=10, bold=True, color='FFFFFF')
        header_fill = PatternFill(start_color=HEADER_COLOR, end_color=HEADER_COLOR, fill_type='solid')
        cell_font = Font(name='Arial', size=9)
        thin_border = Border(
            left=Side(style='thin', color='CCCCCC'),
            right=Side(style='thin', color='CCCCCC'),
            top=Side(style='thin', color='CCCCCC'),
            bottom=Side(style='thin', color='CCCCCC'),
        )

        headers, rows = self._table(result)
        width = max(len(headers), 1)
        row_num = 1

        ws.cell(row=row_num, column=1, value=result.metadata.report_name).font = title_font
        ws.cell(row=row_num + 1, column=1, value=self._subtitle(result)).font = subtitle_font
        if width > 1:
            for merge_row in (row_num, row_num + 1):
                ws.merge_cells(start_row=merge_row, start_column=1, end_row=merge_row, end_column=width)
        row_num += 3

        sections = [{"title": None, "headers": headers, "rows": rows}] + self._aggregate_sections(result)
        for section in sections:
            if section["title"]:
                ws.cell(row=row_num, column=1, value=section["title"]).font = Font(
                    name='Arial', size=11, bold=True
                )
                row_num += 1

            for col_idx, header in enumerate(section["headers"], 1):
                cell = ws.cell(row=row_num, column=col_idx, value=header)
                cell.font = header_font
                cell.fill = header_fill
                cell.alignment = Alignment(horizontal='center', vertical='center')
                cell.border = thin_border
            row_num += 1

            for row in section["rows"]:
                for col_idx, value in enumerate(row, 1):
                    cell = ws.cell(row=row_num, column=col_idx, value=self._excel_value(value))
                    cell.font = cell_font
                    cell.border = thin_border
                    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
                        cell.alignment = Alignment(horizontal='right')
                        if isinstance(value, float):
                            cell.number_format = '#,##0.00'
                row_num += 1
            row_num += 1

        # Column widths from the longest value below the title rows
        for column in ws.iter_cols(min_row=3):
            lengths = [len(str(cell.value)) for cell in column if cell.value is not None]
            if lengths:
                ws.column_dimensions[get_column_letter(column[0].column)].width = min(max(lengths) + 2, 50)

        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    def _create_table_style(self) -> TableStyle:
        return TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(f'#{HEADER_COLOR}')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 9),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('TOPPADDING', (0, 0), (-1, 0), 8),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 8),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.gray),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f3f4f6')]),
        ])

    def to_pdf(self, result: ReportExecutionResult) -> bytes:
        headers, rows = self._table(result)
        buffer = io.BytesIO()
        # Wide reports go landscape
        page_size = landscape(letter) if len(headers) > 5 else letter
        doc = SimpleDocTemplate(
            buffer,
            pagesize=page_size,
            rightMargin=0.5 * inch,
            leftMargin=0.5 * inch,
            topMargin=0.5 * inch,
            bottomMargin=0.5 * inch,
        )

        elements = [
            Paragraph(result.metadata.report_name, self.styles['ReportTitle']),
            Paragraph(self._subtitle(result), self.styles['ReportSubtitle']),
        ]

        available_width = page_size[0] - inch
        sections = [{"title": None, "headers": headers, "rows": rows}] + self._aggregate_sections(result)
        for section in sections:
            if section["title"]:
                elements.append(Paragraph(section["title"], self.styles['SectionHeader']))
            table_data = [section["headers"]] + [
                [self._format_value(cell) for cell in row] for row in section["rows"]
            ]
            col_width = available_width / max(len(section["headers"]), 1)
            table = Table(table_data, colWidths=[col_width] * len(section["headers"]), repeatRows=1)
            table.setStyle(self._create_table_style())
            elements.append(table)
            elements.append(Spacer(1, 15))

        doc.build(elements)
        return buffer.getvalue()

    def export(self, result: ReportExecutionResult, export_format: ExportFormat) -> bytes:
        """Serialize ``result`` in ``export_format`` as bytes."""
        if export_format == ExportFormat.CSV:
            return self.to_csv(result).encode("utf-8")
        if export_format == ExportFormat.EXCEL:
            return self.to_excel(result)
        if export_format == ExportFormat.PDF:
            return self.to_pdf(result)
        return self.to_json(result).encode("utf-8")
