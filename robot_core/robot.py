"""
Robot Core
Builds every core component from configuration and drives them from one control tick
"""

import time
import logging
import numpy as np
from typing import Callable, Dict, List, Optional

from .commands import Command, CommandScheduler
from .config import RobotConfig
from .telemetry import publish
from .perception.geometry import Transform3d
from .perception.field_layout import FieldLayout
from .perception.camera_estimator import CameraEstimator, CameraIntrinsics, DetectionChannel
from .perception.pose_fusion import PoseFusionCoordinator
from .perception.simulation import SimulatedCamera
from .control.hardware import MotorOutput, OutputRegistry, SimulatedMotor, GamePieceSensor
from .control.pid_controller import PIDController
from .control.feedforward import FeedforwardGains, ProfileConstraints
from .control.mechanisms import Lift, Arm, Intake, Gripper, Climber
from .control.simulation import ElevatorSim, ArmSim
from .orchestration.orchestrator import ActionOrchestrator
from .orchestration.superstructure import Superstructure


MECHANISM_NAMES = ('lift', 'arm', 'intake', 'gripper', 'climber')


def camera_transform(values: List[float]) -> Transform3d:
    """[x, y, z, roll, pitch, yaw] with angles in degrees"""
    x, y, z, roll, pitch, yaw = values
    return Transform3d.from_xyz_rpy(x, y, z, np.radians(roll), np.radians(pitch), np.radians(yaw))


class RobotCore:
    """
    Vision fusion and superstructure wired to a single scheduler
    """

    def __init__(self, config: RobotConfig, odometry,
                 telemetry=None,
                 motors: Optional[Dict[str, MotorOutput]] = None,
                 field_layout: Optional[FieldLayout] = None,
                 camera_channels: Optional[Dict[str, DetectionChannel]] = None,
                 game_piece_sensor: Optional[GamePieceSensor] = None,
                 range_supplier: Optional[Callable[[], Optional[float]]] = None,
                 simulation: bool = False,
                 pose_supplier: Optional[Callable[[], Transform3d]] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize robot core

        Args:
            config: Robot configuration
            odometry: Drivetrain pose estimator accepting vision measurements
            telemetry: Optional dashboard sink
            motors: Output per mechanism name; simulated motors are built when omitted
            field_layout: Marker layout, loaded from config.vision.field_layout when omitted
            camera_channels: Detection channel per camera name, created when omitted
            game_piece_sensor: Range sensor ending the coral intake
            range_supplier: Game-piece distance in millimeters, wrapped in a sensor
                when no game_piece_sensor is given
            simulation: Step mechanism physics and simulated cameras every tick
            pose_supplier: Robot pose fed to simulated cameras (and telemetry)
            clock: Monotonic time source
        """
        self.config = config
        self.odometry = odometry
        self.telemetry = telemetry
        self.simulation = simulation
        self.pose_supplier = pose_supplier
        self.clock = clock

        self.scheduler = CommandScheduler(config.period)
        self.registry = OutputRegistry()
        self.motors = motors if motors is not None else self._build_simulated_motors()
        missing = [name for name in MECHANISM_NAMES if name not in self.motors]
        if missing:
            raise ValueError(f"No motor configured for: {', '.join(missing)}")

        self._build_mechanisms()

        if field_layout is None:
            if config.vision.field_layout is not None:
                field_layout = FieldLayout.load(config.vision.field_layout)
            else:
                logging.warning("No field layout configured, vision will not produce poses")
                field_layout = FieldLayout({}, 0.0, 0.0)
        self.field_layout = field_layout

        self.camera_channels = dict(camera_channels or {})
        self.estimators: List[CameraEstimator] = []
        self.simulated_cameras: List[SimulatedCamera] = []
        self._build_cameras()

        self.fusion = PoseFusionCoordinator(
            self.estimators, odometry, telemetry, field_layout,
            max_ambiguity=config.vision.max_ambiguity,
            field_margin=config.vision.field_margin,
            max_pose_height=config.vision.max_pose_height
        )

        if game_piece_sensor is None and range_supplier is not None:
            game_piece_sensor = GamePieceSensor(range_supplier, config.setpoints.game_piece_threshold_mm)

        self.orchestrator = ActionOrchestrator(self.mechanisms, telemetry, clock)
        self.superstructure = Superstructure(
            self.lift, self.arm, self.intake, self.gripper, self.climber,
            orchestrator=self.orchestrator,
            setpoints=config.setpoints,
            game_piece_sensor=game_piece_sensor,
            telemetry=telemetry
        )

        self.autonomous_command: Optional[Command] = None

        if simulation:
            self.scheduler.register_periodic("simulated cameras", self._update_simulated_cameras)
        self.scheduler.register_periodic("vision", self.fusion.update)
        self.scheduler.register_periodic("orchestrator", self.orchestrator.update)
        for mechanism in self.mechanisms:
            self.scheduler.register_periodic(mechanism.name, mechanism.periodic)
        if simulation:
            self.scheduler.register_periodic("physics", self._update_physics)
        self.scheduler.register_periodic("telemetry", self._publish_telemetry)

        logging.info(f"RobotCore initialized with {len(self.estimators)} cameras "
                     f"(simulation: {simulation})")

    def _build_simulated_motors(self) -> Dict[str, MotorOutput]:
        cfg = self.config
        voltage = cfg.nominal_voltage
        return {
            'lift': SimulatedMotor(
                (cfg.lift.motor_id, cfg.lift.follower_id),
                ElevatorSim(cfg.lift.sim_kv, cfg.lift.sim_ka, cfg.lift.sim_kg,
                            cfg.lift.min_height, cfg.lift.max_height, cfg.period),
                voltage
            ),
            'arm': SimulatedMotor(
                (cfg.arm.motor_id,),
                ArmSim(cfg.arm.sim_kv, cfg.arm.sim_ka, cfg.arm.sim_kg,
                       cfg.arm.min_angle, cfg.arm.max_angle, cfg.period),
                voltage
            ),
            'intake': SimulatedMotor((cfg.intake.motor_id,), max_voltage=voltage),
            'gripper': SimulatedMotor((cfg.gripper.motor_id,), max_voltage=voltage),
            'climber': SimulatedMotor((cfg.climber.motor_id,), max_voltage=voltage),
        }

    def _build_mechanisms(self):
        cfg = self.config
        lift_cfg, arm_cfg = cfg.lift, cfg.arm

        self.lift = Lift(
            self.motors['lift'],
            PIDController(lift_cfg.kp, lift_cfg.ki, lift_cfg.kd, period=cfg.period),
            FeedforwardGains(lift_cfg.ks, lift_cfg.kg, lift_cfg.kv, lift_cfg.ka),
            ProfileConstraints(lift_cfg.max_velocity, lift_cfg.max_acceleration),
            tolerance=lift_cfg.tolerance,
            min_height=lift_cfg.min_height, max_height=lift_cfg.max_height,
            period=cfg.period, registry=self.registry
        )
        self.arm = Arm(
            self.motors['arm'],
            PIDController(arm_cfg.kp, arm_cfg.ki, arm_cfg.kd, period=cfg.period),
            FeedforwardGains(arm_cfg.ks, arm_cfg.kg, arm_cfg.kv, arm_cfg.ka),
            ProfileConstraints(arm_cfg.max_velocity, arm_cfg.max_acceleration),
            tolerance=arm_cfg.tolerance,
            min_angle=arm_cfg.min_angle, max_angle=arm_cfg.max_angle,
            period=cfg.period, registry=self.registry
        )
        self.intake = Intake(self.motors['intake'], cfg.nominal_voltage, self.registry)
        self.gripper = Gripper(self.motors['gripper'], cfg.nominal_voltage, self.registry)
        self.climber = Climber(self.motors['climber'], cfg.nominal_voltage, self.registry)

        self.mechanisms = [self.lift, self.arm, self.intake, self.gripper, self.climber]

    def _build_cameras(self):
        vision = self.config.vision
        for camera_cfg in vision.cameras:
            channel = self.camera_channels.setdefault(camera_cfg.name, DetectionChannel())
            robot_to_camera = camera_transform(camera_cfg.robot_to_camera)
            intrinsics = CameraIntrinsics.from_fov(
                camera_cfg.width, camera_cfg.height, camera_cfg.diagonal_fov_deg
            )

            self.estimators.append(CameraEstimator(
                camera_cfg.name, channel, self.field_layout, robot_to_camera, intrinsics,
                single_tag_std_devs=vision.single_tag_std_devs,
                multi_tag_std_devs=vision.multi_tag_std_devs,
                duplicate_threshold=vision.duplicate_threshold,
                mount_height=vision.mount_height,
                mount_pitch=np.radians(vision.mount_pitch_deg)
            ))

            if self.simulation:
                self.simulated_cameras.append(
                    SimulatedCamera(self.field_layout, robot_to_camera, intrinsics, channel)
                )

    def robot_periodic(self):
        """One control tick"""
        self.scheduler.run()

    def autonomous_init(self, command: Optional[Command] = None):
        self.autonomous_command = command
        if command is not None:
            self.scheduler.schedule(command)

    def teleop_init(self):
        if self.autonomous_command is not None:
            self.scheduler.cancel(self.autonomous_command)
            self.autonomous_command = None

    def disabled_init(self):
        """Cancel everything and leave every mechanism halted"""
        self.scheduler.cancel_all()
        self.orchestrator.cancel()

    def _update_simulated_cameras(self):
        if self.pose_supplier is None:
            return
        pose = self.pose_supplier()
        timestamp = self.clock()
        for camera in self.simulated_cameras:
            camera.update(pose, timestamp)

    def _update_physics(self):
        for motor in self.motors.values():
            if isinstance(motor, SimulatedMotor):
                motor.update()

    def _publish_telemetry(self):
        publish(self.telemetry, "Lift/Height", self.lift.height)
        publish(self.telemetry, "Lift/AtGoal", self.lift.is_at_goal())
        publish(self.telemetry, "Arm/Angle", self.arm.angle)
        publish(self.telemetry, "Arm/AtGoal", self.arm.is_at_goal())
        for mechanism in (self.intake, self.gripper, self.climber):
            publish(self.telemetry, f"{mechanism.name.capitalize()}/Duty", mechanism.get_measurement())
        publish(self.telemetry, "Superstructure/SelectedLevel", self.superstructure.level_selector.level)

        if self.pose_supplier is not None:
            pose = self.pose_supplier().to_pose2d()
            publish(self.telemetry, "Drive/X", pose.x)
            publish(self.telemetry, "Drive/Y", pose.y)
            publish(self.telemetry, "Drive/Heading", float(np.degrees(pose.heading)))
