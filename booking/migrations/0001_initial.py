import booking.models
import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


STATUS_CHOICES = [
    ('Case Booked', 'Case Booked'),
    ('Preparing Order', 'Preparing Order'),
    ('Order Prepared', 'Order Prepared'),
    ('Pending Delivery (Hospital)', 'Pending Delivery (Hospital)'),
    ('Delivered (Hospital)', 'Delivered (Hospital)'),
    ('Case Completed', 'Case Completed'),
    ('Sales Approved', 'Sales Approved'),
    ('Pending Delivery (Office)', 'Pending Delivery (Office)'),
    ('Delivered (Office)', 'Delivered (Office)'),
    ('To be billed', 'To be billed'),
    ('Case Closed', 'Case Closed'),
    ('Case Cancelled', 'Case Cancelled'),
]


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
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('role', models.CharField(choices=[('admin', 'Administrator'), ('operations', 'Operations'), ('operations-manager', 'Operations Manager'), ('sales', 'Sales'), ('sales-manager', 'Sales Manager'), ('driver', 'Driver'), ('it', 'IT')], db_index=True, default='sales', max_length=32)),
                ('countries', models.JSONField(blank=True, default=list)),
                ('departments', models.JSONField(blank=True, default=list)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='CodeTable',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('country', models.CharField(db_index=True, max_length=32)),
                ('table_type', models.CharField(choices=[('hospitals', 'hospitals'), ('departments', 'departments')], max_length=32)),
                ('code', models.CharField(max_length=100)),
                ('display_name', models.CharField(max_length=200)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'unique_together': {('country', 'table_type', 'code')},
            },
        ),
        migrations.CreateModel(
            name='Doctor',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('country', models.CharField(db_index=True, max_length=32)),
                ('specialties', models.JSONField(blank=True, default=list)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='ProcedureType',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('country', models.CharField(db_index=True, max_length=32)),
                ('name', models.CharField(max_length=100)),
                ('is_hidden', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'unique_together': {('country', 'name')},
            },
        ),
        migrations.CreateModel(
            name='DoctorProcedure',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('doctor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='procedures', to='booking.doctor')),
                ('procedure_type', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='doctor_links', to='booking.proceduretype')),
            ],
            options={
                'unique_together': {('doctor', 'procedure_type')},
            },
        ),
        migrations.CreateModel(
            name='SurgerySet',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('country', models.CharField(db_index=True, max_length=32)),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'unique_together': {('country', 'name')},
            },
        ),
        migrations.CreateModel(
            name='ImplantBox',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('country', models.CharField(db_index=True, max_length=32)),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'unique_together': {('country', 'name')},
            },
        ),
        migrations.CreateModel(
            name='DoctorProcedureSet',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('doctor_procedure', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sets', to='booking.doctorprocedure')),
                ('implant_box', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='doctor_links', to='booking.implantbox')),
                ('surgery_set', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='doctor_links', to='booking.surgeryset')),
            ],
            options={
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('surgery_set__isnull', False), ('implant_box__isnull', False), _connector='OR'),
                        name='doctor_procedure_set_has_item',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='CaseCounter',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('country', models.CharField(max_length=32)),
                ('year', models.PositiveIntegerField()),
                ('current_counter', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'unique_together': {('country', 'year')},
            },
        ),
        migrations.CreateModel(
            name='CaseBooking',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('case_reference_number', models.CharField(max_length=50, unique=True)),
                ('hospital', models.CharField(max_length=200)),
                ('department', models.CharField(db_index=True, max_length=100)),
                ('date_of_surgery', models.DateField(db_index=True)),
                ('time_of_procedure', models.TimeField(blank=True, null=True)),
                ('procedure_type', models.CharField(max_length=100)),
                ('procedure_name', models.CharField(max_length=200)),
                ('doctor_name', models.CharField(blank=True, max_length=200)),
                ('surgery_set_selection', models.JSONField(blank=True, default=list)),
                ('implant_box', models.JSONField(blank=True, default=list)),
                ('special_instruction', models.TextField(blank=True)),
                ('status', models.CharField(choices=STATUS_CHOICES, db_index=True, default='Case Booked', max_length=50)),
                ('country', models.CharField(db_index=True, max_length=32)),
                ('submitted_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('processed_at', models.DateTimeField(blank=True, null=True)),
                ('process_order_details', models.TextField(blank=True)),
                ('is_amended', models.BooleanField(default=False)),
                ('amended_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('amended_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='cases_amended', to=settings.AUTH_USER_MODEL)),
                ('doctor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='cases', to='booking.doctor')),
                ('processed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='cases_processed', to=settings.AUTH_USER_MODEL)),
                ('submitted_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='cases_submitted', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['country', 'status'], name='booking_cas_country_5a1f0e_idx'),
                    models.Index(fields=['country', 'date_of_surgery'], name='booking_cas_country_9c3b21_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StatusHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=STATUS_CHOICES, max_length=50)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('details', models.TextField(blank=True)),
                ('attachments', models.JSONField(blank=True, default=list)),
                ('case', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_history', to='booking.casebooking')),
                ('processed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='status_changes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['case', 'status', 'timestamp'], name='booking_sta_case_id_7d2e4a_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'Case Booked')), fields=('case',), name='unique_case_booked_history'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AmendmentHistory',
            fields=[
                ('id', models.CharField(default=booking.models._amendment_id, max_length=64, primary_key=True, serialize=False)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('reason', models.TextField(blank=True)),
                ('changes', models.JSONField(default=list)),
                ('amended_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='amendments', to=settings.AUTH_USER_MODEL)),
                ('case', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='amendment_history', to='booking.casebooking')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['case', 'timestamp'], name='booking_ame_case_id_3b8f61_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CaseBookingQuantity',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_type', models.CharField(choices=[('surgery_set', 'surgery_set'), ('implant_box', 'implant_box')], max_length=16)),
                ('item_name', models.CharField(max_length=200)),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('case', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='quantities', to='booking.casebooking')),
            ],
            options={
                'unique_together': {('case', 'item_type', 'item_name')},
            },
        ),
        migrations.CreateModel(
            name='DailyUsage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('usage_date', models.DateField()),
                ('country', models.CharField(max_length=32)),
                ('department', models.CharField(max_length=100)),
                ('surgery_sets_total', models.PositiveIntegerField(default=0)),
                ('implant_boxes_total', models.PositiveIntegerField(default=0)),
                ('top_items', models.JSONField(blank=True, default=list)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'unique_together': {('usage_date', 'country', 'department')},
            },
        ),
        migrations.CreateModel(
            name='EmailNotificationRule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('country', models.CharField(max_length=32)),
                ('status', models.CharField(choices=STATUS_CHOICES, max_length=50)),
                ('enabled', models.BooleanField(default=True)),
                ('recipients', models.JSONField(blank=True, default=dict)),
                ('subject', models.CharField(blank=True, max_length=255)),
                ('body', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'unique_together': {('country', 'status')},
            },
        ),
        migrations.CreateModel(
            name='SystemSettings',
            fields=[
                ('id', models.PositiveSmallIntegerField(default=1, primary_key=True, serialize=False)),
                ('app_name', models.CharField(default='TM Case Booking', max_length=100)),
                ('maintenance_mode', models.BooleanField(default=False)),
                ('cache_timeout', models.PositiveIntegerField(default=300)),
                ('max_file_size', models.PositiveIntegerField(default=10, help_text='MB')),
                ('session_timeout', models.PositiveIntegerField(default=3600, help_text='seconds')),
                ('password_complexity', models.BooleanField(default=True)),
                ('audit_log_retention', models.PositiveIntegerField(default=90, help_text='days')),
                ('amendment_time_limit', models.PositiveIntegerField(default=1440, help_text='minutes, 0 disables')),
                ('max_amendments_per_case', models.PositiveIntegerField(default=5, help_text='0 disables')),
                ('email_notifications', models.BooleanField(default=True)),
                ('default_theme', models.CharField(choices=[('light', 'light'), ('dark', 'dark'), ('auto', 'auto')], default='light', max_length=8)),
                ('default_language', models.CharField(default='en', max_length=8)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('user_name', models.CharField(blank=True, max_length=150)),
                ('user_role', models.CharField(blank=True, max_length=32)),
                ('action', models.CharField(max_length=64)),
                ('category', models.CharField(max_length=64)),
                ('target', models.CharField(blank=True, max_length=200)),
                ('details', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('success', 'success'), ('warning', 'warning'), ('error', 'error')], default='success', max_length=16)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('country', models.CharField(blank=True, max_length=32)),
                ('department', models.CharField(blank=True, max_length=100)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['category', 'timestamp'], name='booking_aud_categor_4e9a27_idx'),
                    models.Index(fields=['country', 'timestamp'], name='booking_aud_country_b61d03_idx'),
                ],
            },
        ),
    ]
