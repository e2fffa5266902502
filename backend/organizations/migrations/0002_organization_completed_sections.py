from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("organizations", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="organization",
            name="completed_sections",
            field=models.JSONField(
                blank=True,
                default=list,
                help_text="Sections submitted and not reopened by a change request.",
            ),
        ),
    ]
