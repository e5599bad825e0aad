# Generated manually: annulation d'un commun accord en deux temps

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('negotiations', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='conversation',
            name='mutual_cancel_requested_by',
            field=models.CharField(blank=True, choices=[('client', 'Client'), ('printer', 'Imprimeur')], max_length=10, null=True, verbose_name='Annulation commune demandée par'),
        ),
        migrations.AddField(
            model_name='conversation',
            name='mutual_cancel_requested_at',
            field=models.DateTimeField(blank=True, null=True),
        ),
    ]
