from django.urls import path
from . import views

app_name = 'tickets'

urlpatterns = [
    # проверка на входе: GET - статус, POST - проход
    path('verify/<str:code>/', views.verify_ticket, name='verify'),
    path('tickets/<str:code>/pdf/', views.ticket_pdf, name='ticket_pdf'),
]
