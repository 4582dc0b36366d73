import json

from aws_cdk import (
    Stack,
    Duration,
    RemovalPolicy,
    aws_apigatewayv2 as apigwv2,
    aws_apigatewayv2_integrations as integrations,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_efs as efs,
    aws_elasticloadbalancingv2 as elbv2,
    aws_secretsmanager as secretsmanager,
    CfnOutput,
)
from constructs import Construct

from matomo.config import EnvironmentConfig

MATOMO_IMAGE = "public.ecr.aws/bitnami/matomo:latest"
MATOMO_PORT = 8080  # Bitnami Matomo default


class ServiceStack(Stack):
    """Matomo on ECS Fargate behind an internal ALB and an HTTP API.

    Tasks run in the app-tier subnets with the App security group; the ALB
    and the API Gateway VPC link sit in the web-tier subnets with the Web
    security group. Matomo config lives on EFS so tasks are replaceable.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: ec2.IVpc,
        rds_endpoint_address: str,
        rds_endpoint_port: str,
        rds_secret_name: str,
        app_subnet_ids: list[str],
        web_subnet_ids: list[str],
        app_security_group_id: str,
        web_security_group_id: str,
        env_config: EnvironmentConfig,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.env_config = env_config

        app_subnets = [
            ec2.Subnet.from_subnet_id(self, f"AppSubnet-{subnet_id}", subnet_id)
            for subnet_id in app_subnet_ids
        ]
        web_subnets = [
            ec2.Subnet.from_subnet_id(self, f"WebSubnet-{subnet_id}", subnet_id)
            for subnet_id in web_subnet_ids
        ]

        app_security_group = ec2.SecurityGroup.from_security_group_id(
            self,
            "ExistingAppSecurityGroup",
            app_security_group_id,
            mutable=False,
        )
        web_security_group = ec2.SecurityGroup.from_security_group_id(
            self,
            "ExistingWebSecurityGroup",
            web_security_group_id,
            mutable=False,
        )

        db_secret = secretsmanager.Secret.from_secret_name_v2(
            self, "MatomoDbSecret", rds_secret_name
        )

        # --- ECS Cluster ---
        cluster = ecs.Cluster(self, "MatomoCluster", vpc=vpc)

        # --- EFS for Matomo config ---
        file_system = efs.FileSystem(
            self,
            "MatomoFileSystem",
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(subnets=app_subnets),
            security_group=app_security_group,
            removal_policy=RemovalPolicy.RETAIN,
            performance_mode=efs.PerformanceMode.GENERAL_PURPOSE,
            throughput_mode=efs.ThroughputMode.BURSTING,
            encrypted=True,
        )

        access_point = file_system.add_access_point(
            "MatomoAccessPoint",
            posix_user=efs.PosixUser(gid="0", uid="0"),
            create_acl=efs.Acl(owner_gid="0", owner_uid="0", permissions="775"),
        )

        # --- Task Definition ---
        task_definition = ecs.FargateTaskDefinition(
            self,
            "MatomoTaskDef",
            memory_limit_mib=2048,
            cpu=1024,
            volumes=[
                ecs.Volume(
                    name="MatomoEfsVolume",
                    efs_volume_configuration=ecs.EfsVolumeConfiguration(
                        file_system_id=file_system.file_system_id,
                        transit_encryption="ENABLED",
                        authorization_config=ecs.AuthorizationConfig(
                            access_point_id=access_point.access_point_id,
                            iam="ENABLED",
                        ),
                    ),
                ),
            ],
        )
        file_system.grant_root_access(task_definition.task_role)

        admin_secret = secretsmanager.Secret(
            self,
            "MatomoAdminSecret",
            secret_name="MatomoAdminSecret",
            generate_secret_string=secretsmanager.SecretStringGenerator(
                secret_string_template=json.dumps({"username": "matomoadmin"}),
                generate_string_key="password",
                exclude_punctuation=True,
            ),
        )

        # --- Matomo Container ---
        container = task_definition.add_container(
            "MatomoContainer",
            image=ecs.ContainerImage.from_registry(MATOMO_IMAGE),
            environment={
                "MARIADB_HOST": rds_endpoint_address,
                "MARIADB_PORT_NUMBER": rds_endpoint_port,
                "MARIADB_DATABASE_NAME": "matomo",
                "MATOMO_DATABASE_HOST": rds_endpoint_address,
                "MATOMO_DATABASE_PORT_NUMBER": rds_endpoint_port,
                "MATOMO_DATABASE_NAME": "matomo",
                "MATOMO_USERNAME": "matomoadmin",
            },
            secrets={
                "MATOMO_DATABASE_USER": ecs.Secret.from_secrets_manager(
                    db_secret, "username"
                ),
                "MATOMO_DATABASE_PASSWORD": ecs.Secret.from_secrets_manager(
                    db_secret, "password"
                ),
                "MATOMO_PASSWORD": ecs.Secret.from_secrets_manager(
                    admin_secret, "password"
                ),
            },
            port_mappings=[ecs.PortMapping(container_port=MATOMO_PORT)],
            logging=ecs.LogDrivers.aws_logs(stream_prefix="matomo-ecs"),
            health_check=ecs.HealthCheck(
                command=[
                    "CMD-SHELL",
                    f"curl -f http://localhost:{MATOMO_PORT}/index.php || exit 1",
                ],
                interval=Duration.seconds(30),
                timeout=Duration.seconds(5),
                retries=3,
                start_period=Duration.seconds(60),
            ),
        )
        container.add_mount_points(
            ecs.MountPoint(
                container_path="/bitnami/matomo",
                source_volume="MatomoEfsVolume",
                read_only=False,
            )
        )

        # --- Internal ALB ---
        self.alb = elbv2.ApplicationLoadBalancer(
            self,
            "InternalMatomoAlb",
            vpc=vpc,
            internet_facing=False,
            vpc_subnets=ec2.SubnetSelection(subnets=web_subnets),
            security_group=web_security_group,
        )
        self.alb_arn = self.alb.load_balancer_arn

        listener = self.alb.add_listener(
            "HttpListener",
            port=80,
            open=False,
            protocol=elbv2.ApplicationProtocol.HTTP,
        )

        # --- Fargate Service ---
        self.fargate_service = ecs.FargateService(
            self,
            "MatomoFargateService",
            cluster=cluster,
            task_definition=task_definition,
            desired_count=2,
            assign_public_ip=False,
            vpc_subnets=ec2.SubnetSelection(subnets=app_subnets),
            security_groups=[app_security_group],
        )

        # --- Auto Scaling (CPU and memory at 70%) ---
        scaling = self.fargate_service.auto_scale_task_count(
            min_capacity=2,
            max_capacity=4,
        )
        scaling.scale_on_cpu_utilization(
            "CpuScaling",
            target_utilization_percent=70,
            scale_in_cooldown=Duration.seconds(300),
            scale_out_cooldown=Duration.seconds(60),
        )
        scaling.scale_on_memory_utilization(
            "MemoryScaling",
            target_utilization_percent=70,
            scale_in_cooldown=Duration.seconds(300),
            scale_out_cooldown=Duration.seconds(60),
        )

        self.target_group = listener.add_targets(
            "MatomoTarget",
            port=MATOMO_PORT,
            targets=[self.fargate_service],
            health_check=elbv2.HealthCheck(
                path="/index.php",
                interval=Duration.seconds(60),
                timeout=Duration.seconds(5),
                healthy_threshold_count=2,
                unhealthy_threshold_count=5,
            ),
        )

        # --- HTTP API via VPC Link ---
        vpc_link = apigwv2.VpcLink(
            self,
            "MatomoVpcLink",
            vpc=vpc,
            subnets=ec2.SubnetSelection(subnets=web_subnets),
            security_groups=[web_security_group],
        )

        cors = None
        if env_config.allowed_origins:
            cors = apigwv2.CorsPreflightOptions(
                allow_origins=env_config.allowed_origins,
                max_age=Duration.days(1),
            )

        http_api = apigwv2.HttpApi(
            self,
            "MatomoHttpApi",
            api_name="MatomoServiceApi",
            description="HTTP API Gateway for Matomo Service",
            cors_preflight=cors,
        )
        http_api.add_routes(
            path="/{proxy+}",
            methods=[apigwv2.HttpMethod.ANY],
            integration=integrations.HttpAlbIntegration(
                "MatomoHttpApiAlbIntegration",
                listener,
                vpc_link=vpc_link,
            ),
        )

        # --- Outputs ---
        CfnOutput(
            self,
            "MatomoHttpApiUrl",
            description="Matomo HTTP API URL",
            value=http_api.api_endpoint,
        )
        CfnOutput(
            self,
            "InternalAlbDnsName",
            description="Internal ALB DNS Name (Accessible within VPC)",
            value=self.alb.load_balancer_dns_name,
        )
