# Generated manually for the contracts app

from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('projects', '0001_initial'),
        ('negotiations', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Contract',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quote_snapshot', models.JSONField(blank=True, default=dict, verbose_name='Devis figé')),
                ('agreed_price', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Prix convenu')),
                ('platform_commission', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Commission plateforme')),
                ('total_paid', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Total payé')),
                ('printer_earnings', models.DecimalField(decimal_places=2, max_digits=12, verbose_name="Gains de l'imprimeur")),
                ('currency', models.CharField(default='EUR', max_length=3, verbose_name='Devise')),
                ('status', models.CharField(choices=[('pending_signature', 'En attente de signature'), ('signed', 'Signé et payé'), ('printing_started', 'Impression lancée'), ('printing_completed', 'Impression terminée'), ('photos_sent', 'Photos envoyées'), ('shipped', 'Expédié'), ('delivered_confirmed', 'Livraison confirmée'), ('completed', 'Terminé'), ('cancelled', 'Annulé')], default='pending_signature', max_length=25, verbose_name='Statut')),
                ('signed_at', models.DateTimeField(blank=True, null=True)),
                ('printing_started_at', models.DateTimeField(blank=True, null=True)),
                ('printing_completed_at', models.DateTimeField(blank=True, null=True)),
                ('photos_sent_at', models.DateTimeField(blank=True, null=True)),
                ('shipped_at', models.DateTimeField(blank=True, null=True)),
                ('delivered_confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('print_photos', models.JSONField(blank=True, default=list, verbose_name="Photos de l'impression")),
                ('tracking_number', models.CharField(blank=True, max_length=100, null=True, verbose_name='Numéro de suivi')),
                ('shipping_carrier', models.CharField(blank=True, max_length=100, null=True, verbose_name='Transporteur')),
                ('cancellation_reason', models.TextField(blank=True, null=True, verbose_name="Raison de l'annulation")),
                ('client_notes', models.TextField(blank=True, null=True)),
                ('printer_notes', models.TextField(blank=True, null=True)),
                ('printer_paid', models.BooleanField(default=False, verbose_name='Imprimeur payé')),
                ('printer_paid_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Date de création')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Date de mise à jour')),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='client_contracts', to=settings.AUTH_USER_MODEL, verbose_name='Client')),
                ('conversation', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='contract', to='negotiations.conversation', verbose_name='Conversation')),
                ('printer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='printer_contracts', to=settings.AUTH_USER_MODEL, verbose_name='Imprimeur')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='contracts', to='projects.project', verbose_name='Projet')),
                ('quote', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='contracts', to='projects.quote', verbose_name='Devis')),
            ],
            options={
                'verbose_name': 'Contrat',
                'verbose_name_plural': 'Contrats',
                'ordering': ('-created_at',),
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Montant (prix convenu)')),
                ('commission', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Commission')),
                ('printer_payout', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Part imprimeur')),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Total à payer')),
                ('currency', models.CharField(default='EUR', max_length=3, verbose_name='Devise')),
                ('status', models.CharField(choices=[('pending', 'En attente'), ('processing', 'En cours (séquestre)'), ('completed', 'Terminée'), ('failed', 'Échouée'), ('refunded', 'Remboursée')], default='pending', max_length=20, verbose_name='Statut')),
                ('payment_method', models.CharField(choices=[('card', 'Carte'), ('balance', 'Solde'), ('mixed', 'Mixte (solde + carte)'), ('other', 'Autre')], default='card', max_length=10, verbose_name='Mode de paiement')),
                ('balance_used', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Part payée par solde')),
                ('gateway_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Part payée par carte')),
                ('gateway_payment_id', models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ('client_secret', models.CharField(blank=True, max_length=255, null=True)),
                ('gateway_transfer_id', models.CharField(blank=True, max_length=100, null=True)),
                ('gateway_refund_id', models.CharField(blank=True, max_length=100, null=True)),
                ('error_message', models.TextField(blank=True, null=True, verbose_name="Message d'erreur")),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('processed_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('failed_at', models.DateTimeField(blank=True, null=True)),
                ('refunded_at', models.DateTimeField(blank=True, null=True)),
                ('refund_reason', models.TextField(blank=True, null=True)),
                ('refund_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Date de création')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Date de mise à jour')),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='client_transactions', to=settings.AUTH_USER_MODEL, verbose_name='Client')),
                ('contract', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to='contracts.contract', verbose_name='Contrat')),
                ('printer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='printer_transactions', to=settings.AUTH_USER_MODEL, verbose_name='Imprimeur')),
            ],
            options={
                'verbose_name': 'Transaction',
                'verbose_name_plural': 'Transactions',
                'ordering': ('-created_at',),
            },
        ),
        migrations.AddIndex(
            model_name='contract',
            index=models.Index(fields=['client', 'status'], name='contracts_c_client__7a3e15_idx'),
        ),
        migrations.AddIndex(
            model_name='contract',
            index=models.Index(fields=['printer', 'status'], name='contracts_c_printer_c2d904_idx'),
        ),
        migrations.AddIndex(
            model_name='contract',
            index=models.Index(fields=['printer', 'printer_paid'], name='contracts_c_printer_5b18fe_idx'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['client', 'created_at'], name='contracts_t_client__e61c2b_idx'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['printer', 'created_at'], name='contracts_t_printer_0f4a97_idx'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['status', 'created_at'], name='contracts_t_status_93b7d1_idx'),
        ),
        migrations.AddConstraint(
            model_name='transaction',
            constraint=models.UniqueConstraint(condition=models.Q(('status__in', ['pending', 'processing', 'completed'])), fields=('contract',), name='unique_live_transaction_per_contract'),
        ),
    ]
