# Generated manually for payouts and gateway webhook logs

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('contracts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Payout',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Montant')),
                ('currency', models.CharField(default='EUR', max_length=3, verbose_name='Devise')),
                ('status', models.CharField(choices=[('pending', 'En attente'), ('processing', 'En cours'), ('completed', 'Effectué'), ('failed', 'Échoué'), ('cancelled', 'Annulé')], default='pending', max_length=20, verbose_name='Statut')),
                ('bank_details', models.JSONField(blank=True, default=dict, verbose_name='Coordonnées bancaires')),
                ('gateway_transfer_id', models.CharField(blank=True, max_length=100, null=True, verbose_name='ID virement passerelle')),
                ('error_message', models.TextField(blank=True, null=True, verbose_name="Message d'erreur")),
                ('error_code', models.CharField(blank=True, max_length=50, null=True, verbose_name="Code d'erreur")),
                ('admin_notes', models.TextField(blank=True, null=True, verbose_name='Notes administrateur')),
                ('printer_notes', models.TextField(blank=True, null=True, verbose_name='Notes imprimeur')),
                ('requested_at', models.DateTimeField(auto_now_add=True, verbose_name='Date de demande')),
                ('processing_at', models.DateTimeField(blank=True, null=True, verbose_name='Début du traitement')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Date du versement')),
                ('failed_at', models.DateTimeField(blank=True, null=True, verbose_name="Date d'échec")),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name="Date d'annulation")),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Date de mise à jour')),
                ('contracts', models.ManyToManyField(blank=True, related_name='payout_requests', to='contracts.contract', verbose_name='Contrats réglés')),
                ('printer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payouts', to=settings.AUTH_USER_MODEL, verbose_name='Imprimeur')),
                ('processed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='processed_payouts', to=settings.AUTH_USER_MODEL, verbose_name='Traité par')),
            ],
            options={
                'verbose_name': 'Versement imprimeur',
                'verbose_name_plural': 'Versements imprimeurs',
                'ordering': ('-requested_at',),
            },
        ),
        migrations.CreateModel(
            name='PaymentWebhookLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event_id', models.CharField(blank=True, max_length=100, null=True, verbose_name='ID événement')),
                ('event_type', models.CharField(blank=True, max_length=100, null=True, verbose_name="Type d'événement")),
                ('payload', models.JSONField(blank=True, default=dict, verbose_name='Payload reçu')),
                ('signature', models.CharField(blank=True, max_length=500, null=True, verbose_name='Signature')),
                ('is_valid', models.BooleanField(default=False, verbose_name='Signature valide')),
                ('processed', models.BooleanField(default=False, verbose_name='Traité')),
                ('error_message', models.TextField(blank=True, null=True, verbose_name="Message d'erreur")),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Date de réception')),
                ('transaction', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='webhook_logs', to='contracts.transaction', verbose_name='Transaction')),
            ],
            options={
                'verbose_name': 'Log Webhook Stripe',
                'verbose_name_plural': 'Logs Webhooks Stripe',
                'ordering': ('-created_at',),
            },
        ),
        migrations.AddConstraint(
            model_name='payout',
            constraint=models.UniqueConstraint(condition=models.Q(('status__in', ['pending', 'processing'])), fields=('printer',), name='unique_inflight_payout_per_printer'),
        ),
        migrations.AddIndex(
            model_name='payout',
            index=models.Index(fields=['printer', 'status'], name='payments_pa_printer_3f8c21_idx'),
        ),
        migrations.AddIndex(
            model_name='payout',
            index=models.Index(fields=['status', 'requested_at'], name='payments_pa_status_a71d0e_idx'),
        ),
    ]
