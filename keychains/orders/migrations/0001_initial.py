import django.db.models.deletion
import keychains.orders.models
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='OrderGroup',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'order_groups',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date_accepted', models.DateField(default=keychains.orders.models.today)),
                ('date_delivery', models.DateField()),
                ('customer_name', models.CharField(max_length=200)),
                ('order_source', models.CharField(help_text='Where the order came from (Instagram, in person, ...)', max_length=200)),
                ('phrase', models.CharField(help_text='Text engraved on the keychain', max_length=500)),
                ('keychain_type', models.CharField(choices=[('GH', 'GH'), ('2G', '2G'), ('Coupled', 'Coupled'), ('Square', 'Square')], default='GH', max_length=20)),
                ('address', models.TextField(blank=True, default='')),
                ('delivery_type', models.CharField(choices=[('to deliver', 'To deliver'), ('comes and takes', 'Comes and takes')], default='to deliver', max_length=20)),
                ('amount', models.PositiveIntegerField(default=100)),
                ('status', models.CharField(choices=[('critical', 'Critical'), ('normal', 'Normal'), ('done', 'Done')], default='normal', max_length=20)),
                ('accepted', models.BooleanField(default=False)),
                ('done', models.BooleanField(default=False)),
                ('image_url', models.TextField(blank=True, help_text='Compressed photo as a base64 JPEG data URI', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='orders', to='orders.ordergroup')),
            ],
            options={
                'db_table': 'orders',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['group', 'done'], name='orders_group_done_idx'),
                    models.Index(fields=['status'], name='orders_status_idx'),
                    models.Index(fields=['date_delivery'], name='orders_delivery_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('amount__gte', 0)), name='orders_amount_non_negative'),
                ],
            },
        ),
    ]
