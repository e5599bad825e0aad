# Generated manually for the printhub profiles

from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Profile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(choices=[('client', 'Client'), ('printer', 'Imprimeur'), ('admin', 'Administrateur')], default='client', max_length=10, verbose_name='Rôle')),
                ('display_name', models.CharField(blank=True, max_length=100, null=True)),
                ('mobile_number', models.CharField(blank=True, max_length=100, null=True)),
                ('address', models.CharField(blank=True, max_length=200, null=True)),
                ('city', models.CharField(blank=True, max_length=100, null=True)),
                ('post_code', models.CharField(blank=True, max_length=20, null=True)),
                ('country', models.CharField(blank=True, max_length=100, null=True)),
                ('birth_date', models.DateField(blank=True, null=True, verbose_name='Date de naissance')),
                ('birth_place', models.CharField(blank=True, max_length=200, null=True, verbose_name='Lieu de naissance')),
                ('business_status', models.CharField(choices=[('particulier', 'Particulier'), ('micro-entrepreneur', 'Micro-entrepreneur'), ('professionnel', 'Professionnel')], default='particulier', max_length=20, verbose_name='Statut juridique')),
                ('siret', models.CharField(blank=True, max_length=14, null=True, verbose_name='SIRET')),
                ('tva_number', models.CharField(blank=True, max_length=20, null=True, verbose_name='Numéro de TVA')),
                ('yearly_revenue', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name="Chiffre d'affaires annuel")),
                ('yearly_transaction_count', models.PositiveIntegerField(default=0, verbose_name='Nombre de transactions annuelles')),
                ('revenue_year', models.PositiveIntegerField(blank=True, null=True, verbose_name='Année des compteurs')),
                ('reserved_revenue', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name="Chiffre d'affaires réservé")),
                ('reserved_transaction_count', models.PositiveIntegerField(default=0, verbose_name='Transactions réservées')),
                ('account_blocked', models.BooleanField(default=False, verbose_name='Compte bloqué')),
                ('block_reason', models.CharField(blank=True, max_length=255, null=True, verbose_name='Raison du blocage')),
                ('blocked_at', models.DateTimeField(blank=True, null=True, verbose_name='Bloqué le')),
                ('threshold_warning_sent_at', models.DateTimeField(blank=True, null=True, verbose_name='Dernier avertissement de seuil')),
                ('balance_available', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Solde disponible')),
                ('balance_pending', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Solde en attente')),
                ('balance_reserved', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Solde réservé (versement en cours)')),
                ('balance_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Solde total')),
                ('bank_account_holder', models.CharField(blank=True, max_length=200, null=True, verbose_name='Titulaire du compte')),
                ('bank_iban', models.CharField(blank=True, max_length=34, null=True, verbose_name='IBAN')),
                ('bank_bic', models.CharField(blank=True, max_length=11, null=True, verbose_name='BIC')),
                ('bank_name', models.CharField(blank=True, max_length=200, null=True, verbose_name='Banque')),
                ('bank_details_updated_at', models.DateTimeField(blank=True, null=True)),
                ('payee_account_id', models.CharField(blank=True, max_length=100, null=True, verbose_name='Compte bénéficiaire (passerelle)')),
                ('date', models.DateTimeField(auto_now_add=True)),
                ('date_update', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Profil',
                'verbose_name_plural': 'Profils',
            },
        ),
        migrations.AddIndex(
            model_name='profile',
            index=models.Index(fields=['role', 'business_status'], name='accounts_pr_role_5c1e2a_idx'),
        ),
        migrations.AddIndex(
            model_name='profile',
            index=models.Index(fields=['account_blocked'], name='accounts_pr_account_9d4b71_idx'),
        ),
    ]
