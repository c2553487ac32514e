import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Event',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255, verbose_name='Название')),
                ('description', models.TextField(blank=True, verbose_name='Описание')),
                ('starts_at', models.DateTimeField(verbose_name='Дата и время начала')),
                ('duration_minutes', models.PositiveIntegerField(blank=True, null=True, verbose_name='Длительность, мин')),
                ('location', models.CharField(max_length=255, verbose_name='Локация')),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)], verbose_name='Цена')),
                ('status', models.CharField(choices=[('draft', 'Черновик'), ('active', 'В продаже'), ('completed', 'Завершено'), ('cancelled', 'Отменено')], default='draft', max_length=20, verbose_name='Статус')),
                ('tickets_available', models.PositiveIntegerField(default=0, verbose_name='Всего билетов')),
                ('tickets_sold', models.PositiveIntegerField(default=0, verbose_name='Продано')),
                ('seller_email', models.EmailField(blank=True, max_length=254, verbose_name='Email продавца')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Создано')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Обновлено')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Завершено')),
            ],
            options={
                'verbose_name': 'Мероприятие',
                'verbose_name_plural': 'Мероприятия',
                'ordering': ['-starts_at'],
                'indexes': [models.Index(fields=['status', 'starts_at'], name='event_status_starts_idx')],
            },
        ),
    ]
