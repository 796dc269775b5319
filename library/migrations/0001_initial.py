import cinetrack.validators
import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Media',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('external_id', models.CharField(max_length=100, unique=True, validators=[cinetrack.validators.external_id_validator])),
                ('title', models.CharField(max_length=255)),
                ('original_title', models.CharField(blank=True, max_length=255, null=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('release_year', models.PositiveIntegerField(blank=True, null=True)),
                ('genres', models.JSONField(blank=True, default=list)),
                ('director', models.CharField(blank=True, max_length=255, null=True)),
                ('poster_url', models.URLField(blank=True, max_length=500, null=True)),
                ('backdrop_url', models.URLField(blank=True, max_length=500, null=True)),
                ('type', models.CharField(choices=[('MOVIE', 'Movie'), ('TV_SERIES', 'TV series')], max_length=10)),
                ('rating', models.FloatField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(10)])),
                ('duration', models.PositiveIntegerField(blank=True, help_text='Runtime in minutes', null=True)),
            ],
            options={
                'verbose_name_plural': 'Media',
                'ordering': ['title'],
                'indexes': [models.Index(fields=['type'], name='library_media_type_idx')],
            },
        ),
        migrations.CreateModel(
            name='MediaEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('status', models.CharField(choices=[('WANT_TO_WATCH', 'Want to watch'), ('WATCHING', 'Watching'), ('WATCHED', 'Watched')], default='WANT_TO_WATCH', max_length=15)),
                ('user_rating', models.FloatField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(10)])),
                ('personal_notes', models.TextField(blank=True, null=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('watched_at', models.DateTimeField(blank=True, null=True)),
                ('media', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='entries', to='library.media')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='media_entries', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'Media entries',
                'ordering': ['-updated_at'],
                'indexes': [models.Index(fields=['user', 'status'], name='library_entry_status_idx')],
                'constraints': [models.UniqueConstraint(fields=('user', 'media'), name='media_entry_unique_user_media')],
            },
        ),
    ]
