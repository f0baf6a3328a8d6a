from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('domains', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='sendingdomain',
            name='verification_run',
            field=models.IntegerField(default=0),
        ),
    ]
