from datetime import date, timedelta
from typing import Dict, List, Optional
from pathlib import Path
from loguru import logger
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, TableStyle, LongTable
from reportlab.lib.enums import TA_LEFT, TA_CENTER
from reportlab.platypus.flowables import KeepTogether
import openpyxl
from openpyxl.styles import PatternFill, Alignment, Font
from openpyxl.utils import get_column_letter

from ..models.config import DayOff, TeamMemberCapacity
from ..models.entities import SprintCapacitySummary
from .working_days import is_weekend


class CapacityReportGenerator:
    """Serviço responsável pela geração do relatório de capacity da sprint"""

    def __init__(
        self,
        summary: SprintCapacitySummary,
        sprint_name: str,
        output_dir: str,
        team_name: str = "",
        capacities: Optional[Dict[str, TeamMemberCapacity]] = None,
    ):
        """
        Inicializa o gerador de relatórios

        Args:
            summary: Capacity calculada da sprint
            sprint_name: Nome da sprint
            output_dir: Diretório de saída dos relatórios
            team_name: Nome do time
            capacities: Capacity configurada por desenvolvedor (para listar as ausências)
        """
        self.summary = summary
        self.sprint_name = sprint_name
        self.team_name = team_name
        self.capacities = capacities or {}
        self.output_dir = Path(output_dir)
        self.file_stem = f"capacidade_{sprint_name.replace(' ', '_')}"

        # Cria o diretório de saída se não existir
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.styles = getSampleStyleSheet()
        self._setup_styles()

        self.excel_colors = {
            'weekend': PatternFill(start_color='FFB3B3', end_color='FFB3B3', fill_type='solid'),  # Vermelho claro
            'dayoff': PatternFill(start_color='B3B3B3', end_color='B3B3B3', fill_type='solid'),   # Cinza claro
            'working': PatternFill(start_color='B3FFB3', end_color='B3FFB3', fill_type='solid'),  # Verde claro
        }

    def _setup_styles(self):
        """Configura estilos personalizados para o relatório"""
        self.styles.add(ParagraphStyle(
            name='CustomTitle',
            parent=self.styles['Title'],
            fontSize=16,
            spaceAfter=30,
            textColor=colors.HexColor('#FF6B00'),  # Laranja
            alignment=TA_CENTER
        ))

        self.styles.add(ParagraphStyle(
            name='CustomHeading1',
            parent=self.styles['Heading1'],
            fontSize=14,
            spaceAfter=12,
            textColor=colors.HexColor('#FF6B00'),
            alignment=TA_LEFT
        ))

        self.styles.add(ParagraphStyle(
            name='NormalWrap',
            parent=self.styles['Normal'],
            fontSize=10,
            leading=12,
            spaceAfter=6,
            alignment=TA_LEFT
        ))

        self.styles.add(ParagraphStyle(
            name='TableCell',
            parent=self.styles['Normal'],
            fontSize=9,
            leading=11,
            alignment=TA_LEFT
        ))

        self.styles.add(ParagraphStyle(
            name='TableHeader',
            parent=self.styles['Normal'],
            fontSize=10,
            leading=12,
            alignment=TA_LEFT,
            fontName='Helvetica-Bold',
            textColor=colors.white
        ))

    def _create_table_style(self, header_bg_color=colors.HexColor('#FF6B00')):
        """Cria um estilo padrão para as tabelas"""
        return TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), header_bg_color),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('TOPPADDING', (0, 0), (-1, -1), 6),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#FFF5EB')]),
        ])

    def _format_period(self) -> str:
        start, end = self.summary.sprint_start, self.summary.sprint_end
        if not start or not end:
            return "Datas não definidas"
        return f"{start.strftime('%d/%m/%Y')} a {end.strftime('%d/%m/%Y')}"

    def _days_off(self, name: str) -> List[DayOff]:
        capacity = self.capacities.get(name)
        return capacity.days_off if capacity else []

    def _format_days_off(self, name: str) -> str:
        periods = []
        for day_off in self._days_off(name):
            if day_off.start == day_off.end:
                periods.append(day_off.start.strftime('%d/%m/%Y'))
            else:
                periods.append(f"{day_off.start.strftime('%d/%m/%Y')} a {day_off.end.strftime('%d/%m/%Y')}")
        return ', '.join(periods) or '-'

    def _generate_markdown(self) -> str:
        """Gera o conteúdo do relatório em Markdown"""
        report = []

        report.append(f"# Relatório de Capacity - Sprint {self.sprint_name}")
        report.append("")

        report.append("## 1. Resumo da Sprint")
        report.append("")
        report.append(f"- **Sprint:** {self.sprint_name}")
        report.append(f"- **Período:** {self._format_period()}")
        report.append(f"- **Dias úteis:** {self.summary.working_days}")
        report.append(f"- **Ausências declaradas:** {self.summary.total_days_off}")
        report.append(f"- **Capacity total:** {self.summary.total_capacity:.1f}h")
        report.append("")

        report.append("## 2. Capacity dos Desenvolvedores")
        report.append("")
        report.append("| Desenvolvedor | Tasks | Capacity/Dia | Ausências | Capacity Total | Períodos de Ausência |")
        report.append("|---------------|-------|--------------|-----------|----------------|----------------------|")

        for developer in self.summary.developers:
            report.append(
                f"| {developer.name} | {developer.tasks} | {developer.capacity_per_day:.1f}h | "
                f"{developer.days_off} | {developer.total_capacity:.1f}h | {self._format_days_off(developer.name)} |"
            )

        report.append("")
        return "\n".join(report)

    def generate(self) -> List[Path]:
        """
        Gera o relatório de capacity em Markdown, PDF e Excel

        Returns:
            List[Path]: Arquivos gerados
        """
        markdown_path = self.output_dir / f"{self.file_stem}.md"
        markdown_path.write_text(self._generate_markdown(), encoding='utf-8')
        logger.info(f"Relatório Markdown gerado em {markdown_path}")

        pdf_path = self._generate_pdf()
        excel_path = self._generate_excel()
        return [markdown_path, pdf_path, excel_path]

    def _generate_pdf(self) -> Path:
        """Gera o relatório de capacity em PDF"""
        pdf_path = self.output_dir / f"{self.file_stem}.pdf"
        doc = SimpleDocTemplate(
            str(pdf_path),
            pagesize=A4,
            rightMargin=2*cm,
            leftMargin=2*cm,
            topMargin=2*cm,
            bottomMargin=2*cm
        )

        title = f"Relatório de Capacity: {self.sprint_name}"
        if self.team_name:
            title += f" - {self.team_name}"

        elements = [
            Paragraph(title, self.styles['CustomTitle']),
            Spacer(1, 12),
            Paragraph("1. Resumo da Sprint", self.styles['CustomHeading1']),
            Paragraph(f"Período: {self._format_period()}", self.styles['NormalWrap']),
            Paragraph(f"Dias úteis: {self.summary.working_days}", self.styles['NormalWrap']),
            Paragraph(f"Ausências declaradas: {self.summary.total_days_off}", self.styles['NormalWrap']),
            Paragraph(f"Capacity total: {self.summary.total_capacity:.1f}h", self.styles['NormalWrap']),
            Spacer(1, 12),
            Paragraph("2. Capacity dos Desenvolvedores", self.styles['CustomHeading1']),
        ]

        capacity_data = [[
            Paragraph('Desenvolvedor', self.styles['TableHeader']),
            Paragraph('Tasks', self.styles['TableHeader']),
            Paragraph('Capacity/Dia', self.styles['TableHeader']),
            Paragraph('Capacity Total', self.styles['TableHeader']),
            Paragraph('Períodos de Ausência', self.styles['TableHeader'])
        ]]
        for developer in self.summary.developers:
            capacity_data.append([
                Paragraph(developer.name, self.styles['TableCell']),
                str(developer.tasks),
                f"{developer.capacity_per_day:.1f}h",
                f"{developer.total_capacity:.1f}h",
                Paragraph(self._format_days_off(developer.name), self.styles['TableCell'])
            ])

        available_width = doc.width
        capacity_table = LongTable(
            capacity_data,
            colWidths=[
                available_width * 0.3,   # Desenvolvedor
                available_width * 0.1,   # Tasks
                available_width * 0.15,  # Capacity/Dia
                available_width * 0.15,  # Capacity Total
                available_width * 0.3    # Ausências
            ]
        )
        capacity_table.setStyle(self._create_table_style())
        elements.append(KeepTogether(capacity_table))

        doc.build(elements)
        logger.info(f"Relatório PDF gerado em {pdf_path}")
        return pdf_path

    def _sprint_days(self) -> List[date]:
        start, end = self.summary.sprint_start, self.summary.sprint_end
        if not start or not end:
            return []
        days = []
        current_date = start.date()
        while current_date <= end.date():
            days.append(current_date)
            current_date += timedelta(days=1)
        return days

    def _generate_excel(self) -> Path:
        """Gera o relatório de capacity em Excel (resumo e calendário por desenvolvedor)"""
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Resumo"

        headers = ["Desenvolvedor", "Tasks", "Capacity/Dia (h)", "Ausências", "Capacity Total (h)"]
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal='center')
            ws.column_dimensions[get_column_letter(col)].width = 20

        for row, developer in enumerate(self.summary.developers, start=2):
            ws.cell(row=row, column=1, value=developer.name)
            ws.cell(row=row, column=2, value=developer.tasks)
            ws.cell(row=row, column=3, value=developer.capacity_per_day)
            ws.cell(row=row, column=4, value=developer.days_off)
            ws.cell(row=row, column=5, value=developer.total_capacity)

        total_row = len(self.summary.developers) + 2
        ws.cell(row=total_row, column=1, value="Total").font = Font(bold=True)
        ws.cell(row=total_row, column=4, value=self.summary.total_days_off)
        ws.cell(row=total_row, column=5, value=self.summary.total_capacity)
        ws.cell(row=total_row + 1, column=1, value="Dias úteis").font = Font(bold=True)
        ws.cell(row=total_row + 1, column=2, value=self.summary.working_days)

        self._write_calendar(wb.create_sheet("Calendário"))

        excel_path = self.output_dir / f"{self.file_stem}.xlsx"
        wb.save(excel_path)
        logger.info(f"Relatório Excel gerado em {excel_path}")
        return excel_path

    def _write_calendar(self, ws) -> None:
        """Uma linha por desenvolvedor, uma coluna por dia da sprint"""
        days = self._sprint_days()
        ws.column_dimensions['A'].width = 30
        for col, day in enumerate(days, start=2):
            cell = ws.cell(row=1, column=col, value=day)
            cell.number_format = 'dd/mm/yyyy'
            cell.alignment = Alignment(horizontal='center')
            ws.column_dimensions[get_column_letter(col)].width = 12

        for row, developer in enumerate(self.summary.developers, start=2):
            ws.cell(row=row, column=1, value=developer.name).font = Font(bold=True)
            days_off = self._days_off(developer.name)
            for col, day in enumerate(days, start=2):
                cell = ws.cell(row=row, column=col)
                if is_weekend(day):
                    cell.fill = self.excel_colors['weekend']
                elif any(day_off.covers(day) for day_off in days_off):
                    cell.fill = self.excel_colors['dayoff']
                    cell.value = "Ausente"
                else:
                    cell.fill = self.excel_colors['working']
                    cell.value = developer.capacity_per_day
                cell.alignment = Alignment(horizontal='center')
