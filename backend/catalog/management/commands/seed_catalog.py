"""
Management command to add predefined brands and categories to the database
"""
from django.core.management.base import BaseCommand
from backend.catalog.models import Brand, Category


class Command(BaseCommand):
    help = "Adds predefined brands and categories to the catalog"

    BRANDS = [
        ('Apple', 'USA'),
        ('Samsung', 'South Korea'),
        ('Sony', 'Japan'),
        ('LG', 'South Korea'),
        ('Xiaomi', 'China'),
        ('Oppo', 'China'),
        ('Nokia', 'Finland'),
        ('Lenovo', 'China'),
    ]

    CATEGORIES = [
        'Phones',
        'Tablets',
        'Laptops',
        'Headphones',
        'Accessories',
        'Smart Watches',
    ]

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Soft delete all existing brands and categories before adding new ones',
        )

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("SEEDING CATALOG"))
        self.stdout.write(self.style.SUCCESS("=" * 80))

        if options['clear']:
            self.stdout.write(self.style.WARNING("Soft deleting existing brands and categories..."))
            for obj in list(Brand.objects.all()) + list(Category.objects.all()):
                obj.soft_delete()

        brands_created = 0
        for name, country in self.BRANDS:
            _, created = Brand.objects.get_or_create(name=name, defaults={'country': country, 'is_active': True})
            if created:
                brands_created += 1
                self.stdout.write(self.style.SUCCESS(f"  Created brand: {name}"))
            else:
                self.stdout.write(self.style.WARNING(f"  Skipped brand (already exists): {name}"))

        categories_created = 0
        for name in self.CATEGORIES:
            _, created = Category.objects.get_or_create(name=name, defaults={'is_active': True})
            if created:
                categories_created += 1
                self.stdout.write(self.style.SUCCESS(f"  Created category: {name}"))
            else:
                self.stdout.write(self.style.WARNING(f"  Skipped category (already exists): {name}"))

        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(f"Brands Created: {brands_created}")
        self.stdout.write(f"Categories Created: {categories_created}")
        self.stdout.write(f"Total Brands in Database: {Brand.objects.count()}")
        self.stdout.write(f"Total Categories in Database: {Category.objects.count()}")
