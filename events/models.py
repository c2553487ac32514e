from django.db import models
from django.utils import timezone
from django.core.validators import MinValueValidator
from datetime import timedelta


# мероприятия
class Event(models.Model):
    # Статусы мероприятия
    class Status(models.TextChoices):
        DRAFT = 'draft', 'Черновик'
        ACTIVE = 'active', 'В продаже'
        COMPLETED = 'completed', 'Завершено'
        CANCELLED = 'cancelled', 'Отменено'

    title = models.CharField('Название', max_length=255)
    description = models.TextField('Описание', blank=True)
    starts_at = models.DateTimeField('Дата и время начала')
    # Длительность в минутах. может быть null, если длительность неизвестна
    duration_minutes = models.PositiveIntegerField('Длительность, мин', blank=True, null=True)
    location = models.CharField('Локация', max_length=255)
    price = models.DecimalField('Цена', max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])

    status = models.CharField('Статус', max_length=20, choices=Status.choices, default=Status.DRAFT)
    tickets_available = models.PositiveIntegerField('Всего билетов', default=0)
    tickets_sold = models.PositiveIntegerField('Продано', default=0)
    seller_email = models.EmailField('Email продавца', blank=True)

    created_at = models.DateTimeField('Создано', auto_now_add=True)
    updated_at = models.DateTimeField('Обновлено', auto_now=True)
    completed_at = models.DateTimeField('Завершено', blank=True, null=True)

    class Meta:
        ordering = ['-starts_at']
        verbose_name = 'Мероприятие'
        verbose_name_plural = 'Мероприятия'
        indexes = [
            models.Index(fields=['status', 'starts_at'], name='event_status_starts_idx'), # Индекс для выборки свипером по статусу и дате
        ]

    def __str__(self):
        return self.title

    @property
    def ends_at(self):
        #Время окончания = starts_at + duration_minutes (если задана).
        if getattr(self, "duration_minutes", None):
            return self.starts_at + timedelta(minutes=self.duration_minutes)
        return self.starts_at

    def is_past(self, now=None) -> bool:
        #Событие считается прошедшим, если время окончания наступило.
        now = now or timezone.now()
        return self.ends_at <= now
