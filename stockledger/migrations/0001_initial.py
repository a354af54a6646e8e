"""
Initial migration for Stockledger models.
"""

from decimal import Decimal

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Stockledger models: StockUnit, AuditEntry, LpnSequence, CountSession."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StockUnit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('lpn', models.CharField(max_length=50, unique=True, verbose_name='LPN')),
                ('sku', models.CharField(db_index=True, max_length=50, verbose_name='SKU')),
                ('name', models.CharField(blank=True, default='', max_length=255, verbose_name='Nome')),
                ('category', models.CharField(blank=True, default='', max_length=100, verbose_name='Categoria')),
                ('brand', models.CharField(blank=True, default='', max_length=100, verbose_name='Marca')),
                ('supplier', models.CharField(blank=True, default='', max_length=200, verbose_name='Fornecedor')),
                ('lot', models.CharField(blank=True, default='', max_length=50, verbose_name='Lote')),
                ('document_ref', models.CharField(blank=True, default='', help_text='NF / controle que originou a entrada', max_length=100, verbose_name='Documento de origem')),
                ('unit_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Custo unitário')),
                ('width', models.DecimalField(decimal_places=3, default=Decimal('1.52'), max_digits=8, verbose_name='Largura')),
                ('quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Quantidade')),
                ('status', models.CharField(choices=[('open', 'Rolo aberto'), ('closed', 'Rolo fechado'), ('depleted', 'Esgotado')], db_index=True, default='closed', max_length=20, verbose_name='Status')),
                ('standard_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Metragem padrão')),
                ('min_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Estoque mínimo')),
                ('zone', models.CharField(blank=True, default='', max_length=50, verbose_name='Coluna')),
                ('level', models.CharField(blank=True, default='', max_length=50, verbose_name='Prateleira')),
                ('box', models.CharField(blank=True, default='', max_length=50, verbose_name='Caixa')),
                ('note', models.TextField(blank=True, default='', verbose_name='Observação')),
                ('inbound_reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Motivo de entrada')),
                ('responsible', models.CharField(blank=True, default='', max_length=150, verbose_name='Responsável')),
                ('version', models.PositiveIntegerField(default=1, verbose_name='Versão')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Entrada')),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Última atualização')),
            ],
            options={
                'verbose_name': 'Unidade de estoque',
                'verbose_name_plural': 'Unidades de estoque',
                'ordering': ['lpn'],
            },
        ),
        migrations.CreateModel(
            name='AuditEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('actor_name', models.CharField(blank=True, default='', max_length=150, verbose_name='Usuário')),
                ('actor_email', models.CharField(blank=True, default='', max_length=254, verbose_name='E-mail')),
                ('actor_role', models.CharField(blank=True, default='', max_length=50, verbose_name='Perfil')),
                ('action', models.CharField(choices=[('ENTRY_REGISTERED', 'Entrada registrada'), ('WITHDRAWAL_SALE', 'Saída por venda'), ('WITHDRAWAL_EXCHANGE', 'Saída por troca'), ('WITHDRAWAL_DAMAGE', 'Saída por defeito'), ('WITHDRAWAL_ADJUSTMENT', 'Saída por ajuste'), ('WITHDRAWAL_AUDIT', 'Saída por auditoria'), ('BULK_CREATE', 'Carga em massa'), ('BULK_UPDATE', 'Atualização em massa'), ('BULK_DELETE', 'Remoção em massa'), ('MANUAL_EDIT', 'Edição de cadastro'), ('COUNT_CONFIRMED', 'Inventário confirmado'), ('COUNT_SURPLUS', 'Sobra de inventário')], db_index=True, max_length=40, verbose_name='Ação')),
                ('sku', models.CharField(blank=True, db_index=True, default='', max_length=50, verbose_name='SKU')),
                ('lpn', models.CharField(blank=True, db_index=True, default='', max_length=50, verbose_name='LPN')),
                ('lot', models.CharField(blank=True, default='', max_length=50, verbose_name='Lote')),
                ('name', models.CharField(blank=True, default='', max_length=255, verbose_name='Nome')),
                ('delta', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='Positivo = entrada, Negativo = saída', max_digits=12, verbose_name='Variação')),
                ('value', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14, verbose_name='Valor da operação')),
                ('narrative', models.CharField(blank=True, default='', max_length=500, verbose_name='Detalhes')),
                ('document_ref', models.CharField(blank=True, db_index=True, default='', max_length=100, verbose_name='Documento')),
                ('kind', models.CharField(blank=True, default='LOGISTICA', max_length=30, verbose_name='Tipo')),
                ('category', models.CharField(blank=True, default='', max_length=100, verbose_name='Categoria')),
                ('reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Motivo')),
                ('counterparty', models.CharField(blank=True, default='', max_length=200, verbose_name='Cliente/Fornecedor')),
                ('batch_ref', models.CharField(blank=True, db_index=True, default='', max_length=40, verbose_name='Lote de operação')),
            ],
            options={
                'verbose_name': 'Registro de auditoria',
                'verbose_name_plural': 'Registros de auditoria',
                'ordering': ['-timestamp', '-id'],
            },
        ),
        migrations.CreateModel(
            name='LpnSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('prefix', models.CharField(max_length=10, unique=True, verbose_name='Prefixo')),
                ('last_value', models.PositiveBigIntegerField(default=0, verbose_name='Último número')),
            ],
            options={
                'verbose_name': 'Sequência de LPN',
                'verbose_name_plural': 'Sequências de LPN',
            },
        ),
        migrations.CreateModel(
            name='CountSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reference', models.CharField(max_length=40, unique=True, verbose_name='Referência')),
                ('started_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Início')),
                ('finished_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Fim')),
                ('responsible', models.CharField(blank=True, default='', max_length=150, verbose_name='Responsável')),
                ('items_count', models.PositiveIntegerField(default=0, verbose_name='Itens contados')),
                ('surplus_count', models.PositiveIntegerField(default=0, verbose_name='Ajustes positivos')),
                ('shortfall_count', models.PositiveIntegerField(default=0, verbose_name='Ajustes negativos')),
                ('note', models.TextField(blank=True, default='', verbose_name='Observação')),
                ('duration_seconds', models.PositiveIntegerField(default=0, verbose_name='Duração (s)')),
            ],
            options={
                'verbose_name': 'Sessão de inventário',
                'verbose_name_plural': 'Sessões de inventário',
                'ordering': ['-started_at'],
            },
        ),
        # Indexes
        migrations.AddIndex(
            model_name='stockunit',
            index=models.Index(fields=['zone', 'level'], name='stockledger_unit_location_idx'),
        ),
        migrations.AddIndex(
            model_name='auditentry',
            index=models.Index(fields=['lpn', 'timestamp'], name='stockledger_entry_lpn_ts_idx'),
        ),
        migrations.AddConstraint(
            model_name='stockunit',
            constraint=models.CheckConstraint(condition=models.Q(quantity__gte=0), name='stockunit_quantity_non_negative'),
        ),
        migrations.AddConstraint(
            model_name='stockunit',
            constraint=models.CheckConstraint(condition=models.Q(unit_cost__gte=0), name='stockunit_unit_cost_non_negative'),
        ),
    ]
