from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    # вебхук Stripe: оплата выпускает билеты, возврат их отменяет
    path('stripe/webhook/', views.stripe_webhook, name='stripe_webhook'),
]
