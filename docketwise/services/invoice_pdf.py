import logging
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from docketwise.services.service_error import ServiceError

COMPANY_NAME = "DoBi Steel Fixing Pty Ltd"
COMPANY_SUBTITLE = "Professional Steel Fixing Services"
CURRENCY = "AUD"


class InvoicePdfService:
    @staticmethod
    def generate_invoice_pdf(invoice_data):
        """
        Render a worker invoice as PDF bytes.

        Args:
            invoice_data (dict): invoice_id, contractor_name, contractor_email, week_label,
                hourly_rate, total_hours, total_amount, submitted_at and entries, where each
                entry has date, builder_name, company_code, location_label, tonnage_hours,
                day_labour_hours and total_hours

        Returns:
            bytes: the PDF document
        """
        try:
            buffer = BytesIO()
            doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=54, bottomMargin=54)
            styles = getSampleStyleSheet()
            story = []

            normal_style = ParagraphStyle('Normal', parent=styles['Normal'], fontSize=10, fontName='Helvetica')
            right_style = ParagraphStyle('Right', parent=normal_style, alignment=2)
            section_style = ParagraphStyle('Section', parent=styles['Heading3'], fontSize=12,
                                           textColor=colors.HexColor("#0056b3"), spaceAfter=6)

            # Header: company on the left, invoice meta on the right
            company_cell = [
                Paragraph(f"<b>{COMPANY_NAME}</b>", ParagraphStyle('Company', parent=normal_style, fontSize=14)),
                Paragraph(COMPANY_SUBTITLE, normal_style),
            ]
            invoice_cell = [
                Paragraph("<b>INVOICE</b>", ParagraphStyle('Title', parent=right_style, fontSize=16)),
                Paragraph(f"Inv. No : {invoice_data['invoice_id']}", right_style),
                Paragraph(f"Submitted : {invoice_data.get('submitted_at') or '-'}", right_style),
                Paragraph("Status : Submitted", right_style),
            ]
            header_table = Table([[company_cell, invoice_cell]], colWidths=[4 * inch, 2.5 * inch])
            header_table.setStyle(TableStyle([
                ('ALIGN', (0, 0), (0, 0), 'LEFT'),
                ('ALIGN', (1, 0), (1, 0), 'RIGHT'),
                ('VALIGN', (0, 0), (-1, -1), 'TOP'),
                ('BOTTOMPADDING', (0, 0), (-1, -1), 12),
                ('LINEBELOW', (0, 0), (-1, 0), 1, colors.HexColor("#0056b3")),
            ]))
            story.append(header_table)
            story.append(Spacer(1, 16))

            story.append(Paragraph("Contractor Details", section_style))
            details = [
                ["Name:", invoice_data['contractor_name']],
                ["Email:", invoice_data.get('contractor_email') or '-'],
                ["Period:", invoice_data['week_label']],
                ["Hourly Rate:", f"${invoice_data['hourly_rate']:.2f}/hr"],
            ]
            details_table = Table(details, colWidths=[1.3 * inch, 5.2 * inch])
            details_table.setStyle(TableStyle([
                ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
                ('FONTSIZE', (0, 0), (-1, -1), 10),
                ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
            ]))
            story.append(details_table)
            story.append(Spacer(1, 16))

            story.append(Paragraph("Work Summary", section_style))
            table_data = [['Date', 'Builder', 'Location', 'Tonnage (hrs)', 'Day Labour (hrs)', 'Total (hrs)']]
            for entry in invoice_data['entries']:
                table_data.append([
                    entry['date'],
                    Paragraph(f"{entry['builder_name']}<br/><font size=8 color='#666666'>{entry['company_code']}</font>",
                              normal_style),
                    Paragraph(entry['location_label'], normal_style),
                    f"{entry['tonnage_hours']:.2f}",
                    f"{entry['day_labour_hours']:.2f}",
                    f"{entry['total_hours']:.2f}",
                ])
            table = Table(table_data, colWidths=[1.0 * inch, 1.6 * inch, 1.4 * inch, 0.9 * inch, 0.9 * inch, 0.8 * inch])
            table.setStyle(TableStyle([
                ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#0056b3")),
                ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
                ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
                ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
                ('FONTSIZE', (0, 0), (-1, -1), 9),
                ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
                ('GRID', (0, 0), (-1, -1), 0.5, colors.gray),
                ('ALIGN', (3, 0), (5, -1), 'RIGHT'),
                ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
                ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor("#f2f2f2")]),
            ]))
            table.repeatRows = 1
            story.append(table)
            story.append(Spacer(1, 20))

            totals_data = [
                [Paragraph("Total Hours", normal_style),
                 Paragraph(f"{invoice_data['total_hours']:.2f} hrs", right_style)],
                [Paragraph("Hourly Rate", normal_style),
                 Paragraph(f"${invoice_data['hourly_rate']:.2f}", right_style)],
                [Paragraph("<b>Total Amount</b>", normal_style),
                 Paragraph(f"<b>${invoice_data['total_amount']:.2f} {CURRENCY}</b>", right_style)],
            ]
            totals_table = Table(totals_data, colWidths=[2 * inch, 1.5 * inch])
            totals_table.setStyle(TableStyle([
                ('TOPPADDING', (0, 0), (-1, -1), 2),
                ('BOTTOMPADDING', (0, 0), (-1, -1), 2),
                ('LINEABOVE', (0, -1), (1, -1), 1, colors.black),
            ]))
            totals_wrapper = Table([['', totals_table]], colWidths=[3 * inch, 3.5 * inch])
            totals_wrapper.setStyle(TableStyle([('ALIGN', (1, 0), (1, 0), 'RIGHT')]))
            story.append(totals_wrapper)
            story.append(Spacer(1, 24))

            story.append(Paragraph(
                "This invoice was generated from approved site dockets. "
                "Please direct any queries to the site supervisor.", normal_style))

            doc.build(story)
            return buffer.getvalue()
        except Exception as e:
            logging.error(f"Error generating invoice PDF: {e}", exc_info=True)
            raise ServiceError("Failed to generate invoice PDF", 500)
