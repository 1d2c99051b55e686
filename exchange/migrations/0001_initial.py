import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import exchange.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('points', models.PositiveIntegerField(default=exchange.models.default_signup_points, help_text='Points balance. Mutated only by the swap ledger.', verbose_name='points')),
                ('items_swapped', models.PositiveIntegerField(default=0, help_text='Number of completed swaps the user took part in.', verbose_name='items swapped')),
                ('points_earned', models.PositiveIntegerField(default=0, help_text='Total points received from points swaps.', verbose_name='points earned')),
                ('points_spent', models.PositiveIntegerField(default=0, help_text='Total points paid for points swaps.', verbose_name='points spent')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the account was created.', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the account was last updated.', verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['email'], name='user_email_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(('points__gte', 0)), name='user_points_non_negative')],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Item',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(help_text='Title of the listing', max_length=100, verbose_name='title')),
                ('description', models.TextField(blank=True, default='', help_text='Description of the garment', validators=[django.core.validators.MaxLengthValidator(1000)], verbose_name='description')),
                ('category', models.CharField(choices=[('tops', 'Tops'), ('bottoms', 'Bottoms'), ('dresses', 'Dresses'), ('outerwear', 'Outerwear'), ('shoes', 'Shoes'), ('accessories', 'Accessories')], help_text='Garment category', max_length=20, verbose_name='category')),
                ('size', models.CharField(help_text='Size label, e.g. M or 42', max_length=20, verbose_name='size')),
                ('condition', models.CharField(choices=[('new', 'New'), ('like_new', 'Like New'), ('good', 'Good'), ('fair', 'Fair')], help_text='Condition of the garment', max_length=20, verbose_name='condition')),
                ('point_value', models.PositiveIntegerField(help_text='Points required to redeem this item', validators=[django.core.validators.MinValueValidator(1, message='Point value must be at least 1.'), django.core.validators.MaxValueValidator(500, message='Point value cannot exceed 500.')], verbose_name='point value')),
                ('availability', models.CharField(choices=[('available', 'Available'), ('reserved', 'Reserved'), ('swapped', 'Swapped')], default='available', help_text='Whether the item can still be swapped', max_length=20, verbose_name='availability')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the item was listed', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the item was last updated', verbose_name='updated at')),
                ('owner', models.ForeignKey(help_text='User who listed this item', on_delete=django.db.models.deletion.CASCADE, related_name='items', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'item',
                'verbose_name_plural': 'items',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['owner', 'availability'], name='item_owner_avail_idx'),
                    models.Index(fields=['category', 'availability'], name='item_category_avail_idx'),
                    models.Index(fields=['point_value'], name='item_point_value_idx'),
                ],
                'constraints': [models.CheckConstraint(condition=models.Q(('point_value__gt', 0)), name='item_point_value_positive')],
            },
        ),
        migrations.CreateModel(
            name='Swap',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('direct', 'Direct item swap'), ('points', 'Points redemption')], help_text='Direct item swap or points redemption', max_length=10, verbose_name='kind')),
                ('points_offered', models.PositiveIntegerField(blank=True, help_text='Points offered (points swaps only)', null=True, verbose_name='points offered')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('rejected', 'Rejected'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', help_text='Current status of the swap', max_length=20, verbose_name='status')),
                ('active_marker', models.BooleanField(default=True, editable=False, help_text='True while pending or accepted, NULL once terminal', null=True, verbose_name='active marker')),
                ('message', models.TextField(blank=True, default='', help_text='Optional note from the requester', validators=[django.core.validators.MaxLengthValidator(500)], verbose_name='message')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, help_text='Timestamp when the swap was requested', verbose_name='created at')),
                ('expires_at', models.DateTimeField(help_text='Pending swaps are cancelled after this time', verbose_name='expires at')),
                ('accepted_at', models.DateTimeField(blank=True, help_text='Timestamp when the owner accepted', null=True, verbose_name='accepted at')),
                ('completed_at', models.DateTimeField(blank=True, help_text='Timestamp when the swap was completed', null=True, verbose_name='completed at')),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now, help_text='Timestamp of the last status change', verbose_name='updated at')),
                ('requester', models.ForeignKey(help_text='User asking for the item', on_delete=django.db.models.deletion.CASCADE, related_name='swaps_requested', to=settings.AUTH_USER_MODEL)),
                ('owner', models.ForeignKey(help_text='Owner of the requested item', on_delete=django.db.models.deletion.CASCADE, related_name='swaps_received', to=settings.AUTH_USER_MODEL)),
                ('requested_item', models.ForeignKey(help_text='Item the requester wants', on_delete=django.db.models.deletion.PROTECT, related_name='swap_requests', to='exchange.item')),
                ('offered_item', models.ForeignKey(blank=True, help_text='Item offered in exchange (direct swaps only)', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='swap_offers', to='exchange.item')),
            ],
            options={
                'verbose_name': 'swap',
                'verbose_name_plural': 'swaps',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['requester', 'status'], name='swap_requester_status_idx'),
                    models.Index(fields=['owner', 'status'], name='swap_owner_status_idx'),
                    models.Index(fields=['requested_item'], name='swap_requested_item_idx'),
                    models.Index(fields=['offered_item'], name='swap_offered_item_idx'),
                    models.Index(fields=['status', 'expires_at'], name='swap_status_expires_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('requester', 'requested_item', 'active_marker'), name='one_active_swap_per_requester_item'),
                    models.CheckConstraint(condition=models.Q(('requester', models.F('owner')), _negated=True), name='swap_requester_not_owner'),
                    models.CheckConstraint(condition=models.Q(models.Q(('kind', 'direct'), ('offered_item__isnull', False), ('points_offered__isnull', True)), models.Q(('kind', 'points'), ('offered_item__isnull', True), ('points_offered__isnull', False)), _connector='OR'), name='swap_kind_payload_consistent'),
                    models.CheckConstraint(condition=models.Q(('points_offered__isnull', True), ('points_offered__gt', 0), _connector='OR'), name='swap_points_offered_positive'),
                    models.CheckConstraint(condition=models.Q(models.Q(('status__in', ('pending', 'accepted')), ('active_marker__isnull', False), ('active_marker', True)), models.Q(('status__in', ('rejected', 'completed', 'cancelled')), ('active_marker__isnull', True)), _connector='OR'), name='swap_active_marker_matches_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SwapTimelineEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('rejected', 'Rejected'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], help_text='Status the swap moved into', max_length=20, verbose_name='status')),
                ('note', models.CharField(blank=True, default='', help_text='Optional note recorded with the transition', max_length=500, verbose_name='note')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, help_text='Timestamp of the transition', verbose_name='created at')),
                ('swap', models.ForeignKey(help_text='Swap this entry belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='timeline_entries', to='exchange.swap')),
            ],
            options={
                'verbose_name': 'swap timeline entry',
                'verbose_name_plural': 'swap timeline entries',
                'ordering': ['created_at', 'id'],
                'indexes': [models.Index(fields=['swap', 'created_at'], name='timeline_swap_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='SwapMessage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('body', models.TextField(help_text='Message text', validators=[django.core.validators.MaxLengthValidator(1000)], verbose_name='body')),
                ('is_read', models.BooleanField(default=False, help_text='Whether the recipient has read the message', verbose_name='is read')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, help_text='Timestamp when the message was sent', verbose_name='created at')),
                ('swap', models.ForeignKey(help_text='Swap this message belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='exchange.swap')),
                ('sender', models.ForeignKey(help_text='Participant who wrote the message', on_delete=django.db.models.deletion.CASCADE, related_name='swap_messages', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'swap message',
                'verbose_name_plural': 'swap messages',
                'ordering': ['created_at', 'id'],
                'indexes': [models.Index(fields=['swap', 'is_read'], name='message_swap_read_idx')],
            },
        ),
    ]
