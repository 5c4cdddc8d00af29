# payments/urls.py

from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    # Online payments (PayHere)
    path('payhere/initiate/', views.payhere_initiate, name='payhere_initiate'),
    path('payhere/notify/', views.payhere_notify, name='payhere_notify'),

    # Manual payments and proofs
    path('manual/', views.manual_payment_submit, name='manual_payment_submit'),
    path('transactions/<uuid:pk>/proofs/', views.proof_resubmit, name='proof_resubmit'),
    path('proofs/<uuid:pk>/review/', views.proof_review, name='proof_review'),

    # Payment accounts
    path('accounts/', views.account_list, name='account_list'),
    path('accounts/<uuid:pk>/', views.account_detail, name='account_detail'),

    # Batch revenue
    path('batches/<uuid:pk>/summary/', views.batch_summary, name='batch_summary'),
    path('batches/<uuid:pk>/resync/', views.batch_resync, name='batch_resync'),
    path('batches/<uuid:pk>/export/', views.batch_export, name='batch_export'),

    # Receipts
    path('transactions/<uuid:pk>/receipt/', views.transaction_receipt, name='transaction_receipt'),
]
