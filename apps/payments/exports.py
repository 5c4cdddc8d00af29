# payments/exports.py

"""
Ledger exports: batch workbook (openpyxl) and transaction receipt (reportlab).
Both return raw bytes; views wrap them in HttpResponse.
"""

from io import BytesIO
import logging

from django.conf import settings
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from payments.models import BatchRevenueAggregate, PaymentAccount, PaymentTransaction

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color='4472C4', end_color='4472C4', fill_type='solid')
HEADER_FONT = Font(bold=True, color='FFFFFF')


def _style_header(row):
    for cell in row:
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT


# =============================================================================
# BATCH LEDGER WORKBOOK
# =============================================================================

def build_batch_ledger_workbook(batch):
    """
    Two sheets: one row per payment account, one row per transaction.
    A summary block with the batch aggregate follows the accounts.
    """
    accounts = (
        PaymentAccount.objects.filter(batch=batch)
        .select_related('student')
        .order_by('student__registration_number')
    )
    transactions = (
        PaymentTransaction.objects.filter(account__batch=batch)
        .select_related('account__student')
        .order_by('created_at')
    )

    wb = Workbook()
    ws = wb.active
    ws.title = "Accounts"

    ws.append([
        'Registration Number', 'Student', 'Full Amount Payable',
        'Amount Paid', 'Remaining', 'Completed', 'Opened'
    ])
    _style_header(ws[1])

    for account in accounts:
        ws.append([
            account.student.registration_number,
            account.student.get_full_name(),
            float(account.full_amount_payable),
            float(account.amount_paid),
            float(account.remaining_balance),
            'Yes' if account.payment_completed else 'No',
            account.created_at.strftime('%Y-%m-%d %H:%M'),
        ])

    aggregate = BatchRevenueAggregate.objects.filter(batch=batch).first()
    if aggregate is not None:
        summary_row = ws.max_row + 2
        ws.cell(row=summary_row, column=1, value='Capacity').font = Font(bold=True)
        ws.cell(row=summary_row, column=2, value=aggregate.no_of_participants)
        ws.cell(row=summary_row + 1, column=1, value='Paid Participants').font = Font(bold=True)
        ws.cell(row=summary_row + 1, column=2, value=aggregate.paid_no_of_participants)
        ws.cell(row=summary_row + 2, column=1, value='Revenue Received').font = Font(bold=True)
        ws.cell(row=summary_row + 2, column=2, value=float(aggregate.revenue_received_total))

    for col, width in zip('ABCDEFG', (20, 30, 18, 14, 14, 11, 18)):
        ws.column_dimensions[col].width = width

    tx_ws = wb.create_sheet("Transactions")
    tx_ws.append([
        'Order ID', 'Student', 'Amount (Net)', 'Method',
        'Status', 'Gateway Payment ID', 'Payment Date'
    ])
    _style_header(tx_ws[1])

    for txn in transactions:
        tx_ws.append([
            txn.order_id,
            txn.account.student.get_full_name(),
            float(txn.amount_paid),
            txn.get_payment_method_display(),
            txn.get_status_display(),
            txn.payment_id or '',
            txn.payment_date.strftime('%Y-%m-%d %H:%M') if txn.payment_date else '',
        ])

    buffer = BytesIO()
    wb.save(buffer)
    logger.info(f"Exported ledger workbook for batch {batch.pk}")
    return buffer.getvalue()


# =============================================================================
# RECEIPT PDF
# =============================================================================

def build_receipt_pdf(txn):
    """Single-page receipt for a completed transaction"""
    account = txn.account
    student = account.student
    currency = settings.PAYHERE.get('CURRENCY', 'LKR')

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4)
    elements = []

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'ReceiptTitle',
        parent=styles['Heading1'],
        fontSize=20,
        textColor=colors.HexColor('#1a1a1a'),
        spaceAfter=20,
        alignment=TA_CENTER
    )

    elements.append(Paragraph('Payment Receipt', title_style))
    elements.append(Spacer(1, 12))

    data = [
        ['Receipt For', student.get_full_name()],
        ['Registration Number', student.registration_number],
        ['Course Batch', str(account.batch)],
        ['Order ID', txn.order_id],
        ['Payment Reference', txn.payment_id or '-'],
        ['Method', txn.get_payment_method_display()],
        ['Amount Received', f"{currency} {txn.amount_paid:,.2f}"],
        ['Payment Date', txn.payment_date.strftime('%Y-%m-%d %H:%M') if txn.payment_date else '-'],
        ['Total Paid To Date', f"{currency} {account.amount_paid:,.2f}"],
        ['Balance Remaining', f"{currency} {account.remaining_balance:,.2f}"],
    ]

    table = Table(data, colWidths=[170, 300])
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#4472C4')),
        ('TEXTCOLOR', (0, 0), (0, -1), colors.whitesmoke),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 8),
        ('GRID', (0, 0), (-1, -1), 1, colors.black)
    ]))
    elements.append(table)
    elements.append(Spacer(1, 20))
    elements.append(Paragraph(
        f"Generated {timezone.now().strftime('%Y-%m-%d %H:%M')}",
        styles['Normal']
    ))

    doc.build(elements)
    return buffer.getvalue()
