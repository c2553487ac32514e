import django.db.models.deletion
import django.utils.timezone
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('events', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('payment_id', models.CharField(max_length=255, unique=True)),
                ('payment_provider', models.CharField(default='stripe', max_length=50)),
                ('buyer_id', models.CharField(max_length=255)),
                ('buyer_email', models.EmailField(max_length=254)),
                ('quantity', models.PositiveIntegerField()),
                ('total_price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('currency', models.CharField(default='usd', max_length=10)),
                ('status', models.CharField(choices=[('paid', 'Оплачен'), ('refunded', 'Возвращён')], default='paid', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('refunded_at', models.DateTimeField(blank=True, null=True)),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='events.event')),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Ticket',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('code', models.CharField(max_length=64, unique=True)),
                ('owner_id', models.CharField(db_index=True, max_length=255)),
                ('owner_email', models.EmailField(max_length=254)),
                ('price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('status', models.CharField(choices=[('valid', 'Действителен'), ('used', 'Использован'), ('cancelled', 'Отменён'), ('expired', 'Истёк')], default='valid', max_length=20)),
                ('issued_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('used_at', models.DateTimeField(blank=True, null=True)),
                ('reminder_sent_at', models.DateTimeField(blank=True, null=True)),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='tickets', to='events.event')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='tickets', to='tickets.order')),
            ],
            options={
                'ordering': ['issued_at'],
                'indexes': [models.Index(fields=['event', 'status'], name='ticket_event_status_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(status='used', used_at__isnull=False) | (~models.Q(status='used') & models.Q(used_at__isnull=True)), name='ticket_used_at_iff_used')],
            },
        ),
        migrations.CreateModel(
            name='VerificationRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(db_index=True, max_length=64)),
                ('outcome', models.CharField(choices=[('valid', 'Проход разрешён'), ('used', 'Уже использован'), ('invalid', 'Недействителен')], max_length=20)),
                ('reason', models.CharField(blank=True, max_length=64)),
                ('verified_by', models.CharField(max_length=150)),
                ('verified_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('event', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='verifications', to='events.event')),
            ],
            options={
                'ordering': ['-verified_at'],
                'indexes': [models.Index(fields=['event', 'verified_at'], name='verification_event_idx')],
            },
        ),
    ]
