# Generated manually for the projects app

from decimal import Decimal

from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import projects.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Project',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200, verbose_name='Titre')),
                ('description', models.TextField(blank=True, default='', verbose_name='Description')),
                ('model_file_url', models.URLField(blank=True, max_length=500, null=True, verbose_name='Fichier 3D')),
                ('model_file_size', models.PositiveBigIntegerField(blank=True, null=True, verbose_name='Taille du fichier (octets)')),
                ('quantity', models.PositiveIntegerField(default=1, verbose_name='Quantité')),
                ('status', models.CharField(choices=[('open', 'Ouvert'), ('quoted', 'Devis reçus'), ('in_progress', 'En cours'), ('completed', 'Terminé'), ('cancelled', 'Annulé')], default='open', max_length=20, verbose_name='Statut')),
                ('printer_found', models.BooleanField(default=False, verbose_name='Imprimeur trouvé')),
                ('printer_found_at', models.DateTimeField(blank=True, null=True)),
                ('refusal_count', models.PositiveIntegerField(default=0, verbose_name='Nombre de refus')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Date de création')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Date de mise à jour')),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='print_projects', to=settings.AUTH_USER_MODEL, verbose_name='Client')),
                ('invited_printers', models.ManyToManyField(blank=True, related_name='project_invitations', to=settings.AUTH_USER_MODEL, verbose_name='Imprimeurs invités')),
                ('refused_printers', models.ManyToManyField(blank=True, related_name='project_refusals', to=settings.AUTH_USER_MODEL, verbose_name='Imprimeurs refusés')),
                ('selected_printer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='selected_projects', to=settings.AUTH_USER_MODEL, verbose_name='Imprimeur retenu')),
            ],
            options={
                'verbose_name': "Projet d'impression",
                'verbose_name_plural': "Projets d'impression",
                'ordering': ('-created_at',),
            },
        ),
        migrations.CreateModel(
            name='Quote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('price', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Prix')),
                ('estimated_duration', models.PositiveIntegerField(default=1, verbose_name='Durée estimée')),
                ('duration_unit', models.CharField(choices=[('hours', 'Heures'), ('days', 'Jours'), ('weeks', 'Semaines')], default='days', max_length=10, verbose_name='Unité')),
                ('delivery_date', models.DateField(blank=True, null=True, verbose_name='Date de livraison')),
                ('message', models.TextField(max_length=1000, verbose_name='Message')),
                ('materials_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('labor_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('shipping_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('other_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('status', models.CharField(choices=[('pending', 'En attente'), ('accepted', 'Accepté'), ('rejected', 'Refusé'), ('expired', 'Expiré')], default='pending', max_length=20, verbose_name='Statut')),
                ('expires_at', models.DateTimeField(default=projects.models.default_quote_expiry, verbose_name="Date d'expiration")),
                ('accepted_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Date de création')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Date de mise à jour')),
                ('printer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='print_quotes', to=settings.AUTH_USER_MODEL, verbose_name='Imprimeur')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='quotes', to='projects.project', verbose_name='Projet')),
            ],
            options={
                'verbose_name': 'Devis',
                'verbose_name_plural': 'Devis',
                'ordering': ('-created_at',),
            },
        ),
        migrations.AddIndex(
            model_name='project',
            index=models.Index(fields=['client', 'status'], name='projects_pr_client_2b7e4f_idx'),
        ),
        migrations.AddIndex(
            model_name='project',
            index=models.Index(fields=['status', 'printer_found'], name='projects_pr_status_c40a19_idx'),
        ),
        migrations.AddIndex(
            model_name='quote',
            index=models.Index(fields=['project', 'status'], name='projects_qu_project_8e51d3_idx'),
        ),
        migrations.AddIndex(
            model_name='quote',
            index=models.Index(fields=['printer', 'status'], name='projects_qu_printer_61fa0c_idx'),
        ),
    ]
