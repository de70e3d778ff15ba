import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='File',
            fields=[
                ('file_id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('owner_id', models.CharField(db_index=True, editable=False, max_length=255)),
                ('name', models.CharField(max_length=255)),
                ('declared_size', models.BigIntegerField(help_text='File size in bytes')),
                ('mime_type', models.CharField(help_text='Content type declared by the client', max_length=255)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('uploading', 'Uploading'), ('completed', 'Completed'), ('abandoned', 'Abandoned')], db_index=True, default='pending', max_length=16)),
                ('upload_id', models.CharField(blank=True, default='', max_length=1024)),
                ('part_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['owner_id', '-created_at'], name='files_owner_recent_idx'),
                    models.Index(fields=['status', 'updated_at'], name='files_status_updated_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('declared_size__gte', 0)), name='declared_size_non_negative'),
                ],
            },
        ),
    ]
