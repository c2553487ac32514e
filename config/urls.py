from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls), #админка

    path('', include('tickets.urls')), #проверка на входе и PDF билетов
    path('payments/', include('payments.urls', namespace='payments')), #вебхуки платежей
]
