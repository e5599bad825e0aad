# Generated manually for the negotiations app

from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


PARTY_CHOICES = [('client', 'Client'), ('printer', 'Imprimeur')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('projects', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Conversation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('initiated_by', models.CharField(choices=PARTY_CHOICES, default='printer', max_length=10, verbose_name='Initiée par')),
                ('status', models.CharField(choices=[('pending', 'En attente'), ('active', 'Active'), ('quote_sent', 'Devis envoyé'), ('negotiating', 'En négociation'), ('quote_accepted', 'Devis accepté'), ('signed', 'Contrat signé'), ('in_production', 'En production'), ('ready', 'Prêt / expédié'), ('completed', 'Terminée'), ('cancelled_by_client', 'Annulée par le client'), ('cancelled_by_printer', "Annulée par l'imprimeur"), ('cancelled_mutual', "Annulée d'un commun accord"), ('cancelled_mediation', 'Annulée par médiation'), ('paused', 'En pause')], default='pending', max_length=25, verbose_name='Statut')),
                ('current_quote', models.JSONField(blank=True, null=True, verbose_name='Devis courant')),
                ('counter_offer_count', models.PositiveSmallIntegerField(default=0, validators=[django.core.validators.MaxValueValidator(3)], verbose_name='Contre-propositions')),
                ('client_signed_at', models.DateTimeField(blank=True, null=True, verbose_name='Signé par le client le')),
                ('printer_signed_at', models.DateTimeField(blank=True, null=True, verbose_name="Signé par l'imprimeur le")),
                ('signed_at', models.DateTimeField(blank=True, null=True, verbose_name='Signé le')),
                ('printing_started', models.BooleanField(default=False)),
                ('printing_started_at', models.DateTimeField(blank=True, null=True)),
                ('printing_completed', models.BooleanField(default=False)),
                ('printing_completed_at', models.DateTimeField(blank=True, null=True)),
                ('photos_shared', models.BooleanField(default=False)),
                ('photos_shared_at', models.DateTimeField(blank=True, null=True)),
                ('photo_urls', models.JSONField(blank=True, default=list)),
                ('order_shipped', models.BooleanField(default=False)),
                ('order_shipped_at', models.DateTimeField(blank=True, null=True)),
                ('tracking_number', models.CharField(blank=True, max_length=100, null=True)),
                ('shipping_method', models.CharField(blank=True, max_length=100, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('last_message_at', models.DateTimeField(blank=True, null=True, verbose_name='Dernier message')),
                ('last_message_by', models.CharField(blank=True, choices=PARTY_CHOICES, max_length=10, null=True)),
                ('unread_count_client', models.PositiveIntegerField(default=0)),
                ('unread_count_printer', models.PositiveIntegerField(default=0)),
                ('reminder_sent_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.TextField(blank=True, null=True, verbose_name="Raison de l'annulation")),
                ('cancelled_by', models.CharField(blank=True, choices=[('client', 'Client'), ('printer', 'Imprimeur'), ('mutual', 'Commun accord'), ('mediator', 'Médiateur')], max_length=10, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('withdrawn_at', models.DateTimeField(blank=True, null=True, verbose_name='Offre retirée le')),
                ('mediation_requested', models.BooleanField(default=False)),
                ('mediation_requested_by', models.CharField(blank=True, choices=PARTY_CHOICES, max_length=10, null=True)),
                ('mediation_requested_at', models.DateTimeField(blank=True, null=True)),
                ('mediation_reason', models.TextField(blank=True, null=True)),
                ('paused_at', models.DateTimeField(blank=True, null=True)),
                ('pause_expires_at', models.DateTimeField(blank=True, null=True)),
                ('paused_by', models.CharField(blank=True, choices=PARTY_CHOICES, max_length=10, null=True)),
                ('is_favorite_for_client', models.BooleanField(default=False)),
                ('is_favorite_for_printer', models.BooleanField(default=False)),
                ('reported', models.BooleanField(default=False)),
                ('reported_by', models.CharField(blank=True, choices=PARTY_CHOICES, max_length=10, null=True)),
                ('reported_at', models.DateTimeField(blank=True, null=True)),
                ('report_reason', models.TextField(blank=True, null=True)),
                ('is_archived', models.BooleanField(default=False)),
                ('archived_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Date de création')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Date de mise à jour')),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='client_conversations', to=settings.AUTH_USER_MODEL, verbose_name='Client')),
                ('printer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='printer_conversations', to=settings.AUTH_USER_MODEL, verbose_name='Imprimeur')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='conversations', to='projects.project', verbose_name='Projet')),
            ],
            options={
                'verbose_name': 'Conversation',
                'verbose_name_plural': 'Conversations',
                'ordering': ('-updated_at',),
            },
        ),
        migrations.CreateModel(
            name='QuoteRevision',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('version', models.PositiveIntegerField(verbose_name='Version')),
                ('sent_by', models.CharField(choices=PARTY_CHOICES, max_length=10, verbose_name='Envoyé par')),
                ('snapshot', models.JSONField(verbose_name='Devis')),
                ('outcome', models.CharField(choices=[('superseded', 'Remplacé'), ('rejected', 'Refusé'), ('withdrawn', 'Retiré')], default='superseded', max_length=20, verbose_name='Issue')),
                ('note', models.TextField(blank=True, null=True, verbose_name='Annotation')),
                ('archived_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Archivé le')),
                ('conversation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='quote_history', to='negotiations.conversation', verbose_name='Conversation')),
            ],
            options={
                'verbose_name': 'Version de devis',
                'verbose_name_plural': 'Historique des devis',
                'ordering': ('archived_at', 'id'),
            },
        ),
        migrations.AddConstraint(
            model_name='conversation',
            constraint=models.UniqueConstraint(condition=models.Q(('is_archived', False)), fields=('project', 'printer'), name='unique_live_conversation_per_printer'),
        ),
        migrations.AddIndex(
            model_name='conversation',
            index=models.Index(fields=['client', 'status'], name='negotiatio_client__4d2a1b_idx'),
        ),
        migrations.AddIndex(
            model_name='conversation',
            index=models.Index(fields=['printer', 'status'], name='negotiatio_printer_9e7c30_idx'),
        ),
        migrations.AddIndex(
            model_name='conversation',
            index=models.Index(fields=['status', 'pause_expires_at'], name='negotiatio_status_1f6b88_idx'),
        ),
        migrations.AddIndex(
            model_name='conversation',
            index=models.Index(fields=['status', 'last_message_at'], name='negotiatio_status_b3c5e2_idx'),
        ),
        migrations.AddIndex(
            model_name='quoterevision',
            index=models.Index(fields=['conversation', 'version'], name='negotiatio_convers_77a0d4_idx'),
        ),
    ]
